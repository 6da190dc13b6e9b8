from unittest.mock import MagicMock, patch

import pytest

from clustertest.core.artifact import derive_tag, resolve_artifact
from clustertest.errors import BuildError
from clustertest.types import ResolvedArtifact, RunConfig


def _settings(build_command=("cluster-image-build",)):
    settings = MagicMock()
    settings.build_command = list(build_command)
    return settings


def test_derive_tag_is_deterministic():
    assert derive_tag("alice", "42") == "dev_alice_pull_42"
    assert derive_tag("alice", "42") == derive_tag("alice", "42")


@pytest.mark.parametrize("identity,pull_request", [("", "42"), ("alice", "")])
def test_derive_tag_rejects_empty_inputs(identity, pull_request):
    with pytest.raises(ValueError):
        derive_tag(identity, pull_request)


def test_explicit_tag_skips_build():
    runner = MagicMock()
    config = RunConfig(marker="alice", tag="dev_alice_pull_42")
    artifact = resolve_artifact(config, _settings(), "alice", runner=runner)
    assert artifact == ResolvedArtifact(tag="dev_alice_pull_42", built=False)
    runner.assert_not_called()


def test_pull_request_builds_and_derives_tag():
    runner = MagicMock(return_value=MagicMock(returncode=0))
    config = RunConfig(marker="nightly bot", pull_request="42")
    artifact = resolve_artifact(config, _settings(["build-image", "--push"]), "alice", runner=runner)
    assert artifact.tag == "dev_alice_pull_42"
    assert artifact.built is True
    runner.assert_called_once()
    assert runner.call_args.args[0] == ["build-image", "--push", "42"]


def test_replayed_tag_matches_built_tag():
    build_runner = MagicMock(return_value=MagicMock(returncode=0))
    built = resolve_artifact(RunConfig(marker="alice", pull_request="42"), _settings(), "alice", runner=build_runner)

    replay_runner = MagicMock()
    replayed = resolve_artifact(RunConfig(marker="alice", tag=built.tag), _settings(), "alice", runner=replay_runner)
    assert replayed.tag == built.tag
    replay_runner.assert_not_called()


def test_build_failure_raises():
    runner = MagicMock(return_value=MagicMock(returncode=3))
    with pytest.raises(BuildError, match="exit code 3") as excinfo:
        resolve_artifact(RunConfig(marker="alice", pull_request="42"), _settings(), "alice", runner=runner)
    assert excinfo.value.exit_code != 0


def test_missing_build_command_raises():
    runner = MagicMock(side_effect=FileNotFoundError("no such file"))
    with pytest.raises(BuildError, match="not found") as excinfo:
        resolve_artifact(RunConfig(marker="alice", pull_request="42"), _settings(), "alice", runner=runner)
    assert "CLUSTERTEST_BUILD_COMMAND" in excinfo.value.hint


def test_build_uses_subprocess_run_by_default():
    with patch("clustertest.core.artifact.subprocess.run", return_value=MagicMock(returncode=0)) as mock_run:
        artifact = resolve_artifact(RunConfig(marker="alice", pull_request="7"), _settings(), "alice")
    mock_run.assert_called_once()
    assert mock_run.call_args.args[0] == ["cluster-image-build", "7"]
    assert artifact.built is True
