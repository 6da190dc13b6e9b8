import shlex

from clustertest.utils.cli import reconstruct_replay_command


def test_pull_request_replaced_by_tag():
    command = reconstruct_replay_command(["-p", "42", "-w", "perf", "-e", "A=1"], "dev_alice_pull_42")
    assert shlex.split(command) == [
        "clustertest",
        "--workspace=perf",
        "--env=A=1",
        "--tag=dev_alice_pull_42",
    ]


def test_passthrough_kept_after_double_dash():
    command = reconstruct_replay_command(["--pull-request=42", "--load", "a b"], "dev_alice_pull_42")
    assert shlex.split(command) == ["clustertest", "--tag=dev_alice_pull_42", "--", "--load", "a b"]


def test_latest_replaced_by_tag():
    command = reconstruct_replay_command(["-l", "-r", "out.json"], "latest_good")
    assert shlex.split(command) == ["clustertest", "--report=out.json", "--tag=latest_good"]
