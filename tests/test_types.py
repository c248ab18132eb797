"""Tests for shared types and the stage log."""

import dataclasses
import logging

import pytest

from remote_destroy.stages import EOF_SENTINEL, StageLog
from remote_destroy.types import (
    ClusterMetadata,
    DestroyOptions,
    DestroyState,
    Stage,
    StagedError,
)


class TestEnums:
    """Test enum definitions."""

    def test_stage_values(self) -> None:
        assert Stage.BUILD.value == "build"
        assert Stage.REMOTE_DEPLOY.value == "remote deploy"
        assert Stage.DONE.value == "done"

    def test_destroy_state_values(self) -> None:
        assert [s.value for s in DestroyState] == [
            "init",
            "metadata_fetched",
            "staged",
            "built",
            "done",
            "failed",
        ]


class TestDataclasses:
    """Test dataclass definitions."""

    def test_cluster_metadata_immutable(self) -> None:
        metadata = ClusterMetadata("runner", "installer")
        assert metadata.certificate == b""
        with pytest.raises(dataclasses.FrozenInstanceError):
            metadata.runner_image = "other"  # type: ignore[misc]

    def test_destroy_options_defaults(self) -> None:
        options = DestroyOptions()
        assert options.name == ""
        assert options.destroy_volumes is False
        assert options.force_destroy is False

    def test_staged_error(self) -> None:
        error = RuntimeError("x")
        staged = StagedError(stage="build", error=error)
        assert staged.user_facing is True
        assert staged.error is error


class TestStageLog:
    """Test StageLog."""

    def test_set_stage(self) -> None:
        log = StageLog()
        log.set_stage("build")
        log.set_stage("done")
        assert log.stage == "done"

    def test_buffer_and_close(self) -> None:
        log = StageLog()
        log.add_to_buffer(logging.INFO, "destroying")
        assert not log.closed

        log.close()

        assert log.closed
        assert log.entries == [
            (logging.INFO, "destroying"),
            (logging.INFO, EOF_SENTINEL),
        ]
