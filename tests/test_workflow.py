"""Tests for the SaveWorkflow state machine."""

import hashlib
import logging

import pytest

from shot_annote.domain import NotifyLevel, ResolutionChoice
from shot_annote.workflow import (
    MSG_DESCRIPTION_REQUIRED,
    MSG_RESOLUTION_PENDING,
    SaveWorkflow,
    WorkflowState,
)

from conftest import FakeHost, tc


def digest(path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


@pytest.fixture
def make_workflow(sidecar):
    def _make(host, **kwargs):
        return SaveWorkflow(str(sidecar), host, **kwargs)

    return _make


class TestValidation:
    """Rejected saves never touch the file."""

    @pytest.mark.parametrize("desc", ["", None])
    def test_empty_description(self, make_workflow, sidecar, desc):
        host = FakeHost("00:01:00")
        wf = make_workflow(host)

        assert wf.save(desc, "Wide") is WorkflowState.IDLE
        assert not sidecar.exists()
        assert host.notifications == [(NotifyLevel.WARNING, MSG_DESCRIPTION_REQUIRED)]

    def test_empty_description_leaves_existing_file(self, make_workflow, existing_sidecar):
        before = digest(existing_sidecar)
        host = FakeHost("00:05:00")
        make_workflow(host).save("", "")
        assert digest(existing_sidecar) == before

    def test_blank_shot_type_becomes_na(self, make_workflow, sidecar):
        host = FakeHost("00:00:42")
        assert make_workflow(host).save("Door opens", "") is WorkflowState.PERSISTED
        assert sidecar.read_text(encoding="utf-8") == "00:00:42\tDoor opens\tN/A\n"

    def test_configured_default_shot_type(self, make_workflow, sidecar):
        host = FakeHost("00:00:42")
        make_workflow(host, default_shot_type="Unknown").save("Door opens", None)
        assert sidecar.read_text(encoding="utf-8") == "00:00:42\tDoor opens\tUnknown\n"

    def test_text_saved_as_typed(self, make_workflow, sidecar):
        host = FakeHost("00:00:42")
        assert make_workflow(host).save("  padded  ", "Wide") is WorkflowState.PERSISTED
        assert sidecar.read_text(encoding="utf-8") == "00:00:42\t  padded  \tWide\n"


class TestSaveWithoutCollision:
    def test_first_save_creates_file(self, make_workflow, sidecar):
        host = FakeHost("00:01:00")
        wf = make_workflow(host)

        assert wf.save("A", "X") is WorkflowState.PERSISTED
        assert sidecar.read_text(encoding="utf-8") == "00:01:00\tA\tX\n"
        assert host.levels() == [NotifyLevel.INFO]
        assert "Annotation saved and file sorted" in host.notifications[0][1]
        assert wf.last_saved.to_line() == "00:01:00\tA\tX"
        assert host.presented == []

    def test_saves_are_sorted(self, make_workflow, sidecar):
        host = FakeHost()
        wf = make_workflow(host)
        for now, desc in [("00:05:00", "E"), ("00:01:00", "A"), ("00:03:00", "C")]:
            host.set_now(now)
            assert wf.save(desc, "X") is WorkflowState.PERSISTED
        assert sidecar.read_text(encoding="utf-8") == (
            "00:01:00\tA\tX\n00:03:00\tC\tX\n00:05:00\tE\tX\n"
        )

    def test_explicit_timestamp_overrides_clock(self, make_workflow, sidecar):
        host = FakeHost("00:09:00")
        make_workflow(host).save("A", "X", timestamp=tc("00:00:10"))
        assert sidecar.read_text(encoding="utf-8") == "00:00:10\tA\tX\n"

    def test_rereads_file_on_every_save(self, make_workflow, sidecar):
        host = FakeHost("00:01:00")
        wf = make_workflow(host)
        wf.save("A", "X")
        # edited outside the tool between saves
        sidecar.write_text("00:01:00\tA\tX\n00:00:30\tManual\tWide\n", encoding="utf-8")
        host.set_now("00:02:00")
        wf.save("B", "Y")
        assert sidecar.read_text(encoding="utf-8") == (
            "00:00:30\tManual\tWide\n00:01:00\tA\tX\n00:02:00\tB\tY\n"
        )

    def test_clock_failure_falls_back_to_zero(self, make_workflow, sidecar):
        host = FakeHost()

        def broken():
            raise RuntimeError("no input")

        host.get_current_timestamp = broken
        assert make_workflow(host).save("A", "X") is WorkflowState.PERSISTED
        assert sidecar.read_text(encoding="utf-8") == "00:00:00\tA\tX\n"


class TestCollision:
    """Existing 00:01:00 A X, incoming 00:01:00 B Y."""

    def test_proceed_overwrites(self, make_workflow, existing_sidecar):
        host = FakeHost("00:01:00", choices=[ResolutionChoice.PROCEED])
        wf = make_workflow(host)

        assert wf.save("B", "Y") is WorkflowState.PERSISTED
        assert existing_sidecar.read_text(encoding="utf-8") == "00:01:00\tB\tY\n"
        existing, incoming = host.presented[0]
        assert existing.to_line() == "00:01:00\tA\tX"
        assert incoming.to_line() == "00:01:00\tB\tY"

    def test_refresh_and_proceed_keeps_both(self, make_workflow, existing_sidecar):
        host = FakeHost(choices=[ResolutionChoice.REFRESH_AND_PROCEED])
        host.set_now("00:01:00", "00:02:00")
        wf = make_workflow(host)

        assert wf.save("B", "Y") is WorkflowState.PERSISTED
        assert existing_sidecar.read_text(encoding="utf-8") == "00:01:00\tA\tX\n00:02:00\tB\tY\n"

    def test_cancel_leaves_file_untouched(self, make_workflow, existing_sidecar):
        before = digest(existing_sidecar)
        host = FakeHost("00:01:00", choices=[ResolutionChoice.CANCEL])
        wf = make_workflow(host)

        assert wf.save("B", "Y") is WorkflowState.CANCELLED
        assert digest(existing_sidecar) == before
        assert wf.pending is None
        assert wf.last_saved is None

    def test_deferred_answer(self, make_workflow, existing_sidecar):
        host = FakeHost("00:01:00")  # answers later, like a non-modal dialog
        wf = make_workflow(host)

        assert wf.save("B", "Y") is WorkflowState.AWAITING_RESOLUTION
        existing, incoming = wf.pending
        assert (existing.description, incoming.description) == ("A", "B")
        assert existing_sidecar.read_text(encoding="utf-8") == "00:01:00\tA\tX\n"

        assert wf.resolve(ResolutionChoice.PROCEED) is WorkflowState.PERSISTED
        assert existing_sidecar.read_text(encoding="utf-8") == "00:01:00\tB\tY\n"

    def test_save_refused_while_awaiting(self, make_workflow, existing_sidecar):
        host = FakeHost("00:01:00")
        wf = make_workflow(host)
        wf.save("B", "Y")

        host.set_now("00:09:00")
        assert wf.save("C", "Z") is WorkflowState.AWAITING_RESOLUTION
        assert host.notifications[-1] == (NotifyLevel.WARNING, MSG_RESOLUTION_PENDING)
        assert existing_sidecar.read_text(encoding="utf-8") == "00:01:00\tA\tX\n"

    def test_abandon_is_cancel(self, make_workflow, existing_sidecar):
        before = digest(existing_sidecar)
        host = FakeHost("00:01:00")
        wf = make_workflow(host)
        wf.save("B", "Y")

        wf.abandon()
        assert wf.state is WorkflowState.CANCELLED
        assert digest(existing_sidecar) == before

    def test_resolve_without_conflict_is_an_error(self, make_workflow):
        wf = make_workflow(FakeHost())
        with pytest.raises(RuntimeError):
            wf.resolve(ResolutionChoice.PROCEED)

    def test_presenter_failure_cancels(self, make_workflow, existing_sidecar):
        host = FakeHost("00:01:00")

        def broken(existing, incoming):
            raise RuntimeError("dialog died")

        host.present_collision = broken
        wf = make_workflow(host)
        assert wf.save("B", "Y") is WorkflowState.CANCELLED
        assert host.levels()[-1] is NotifyLevel.ERROR
        assert existing_sidecar.read_text(encoding="utf-8") == "00:01:00\tA\tX\n"


class TestSecondOrderCollision:
    """Refreshed timestamps are checked again before writing."""

    def test_refresh_onto_another_record_asks_again(self, make_workflow, sidecar):
        sidecar.write_text("00:01:00\tA\tX\n00:02:00\tC\tZ\n", encoding="utf-8")
        host = FakeHost(choices=[ResolutionChoice.REFRESH_AND_PROCEED, ResolutionChoice.PROCEED])
        host.set_now("00:01:00", "00:02:00")
        wf = make_workflow(host)

        assert wf.save("B", "Y") is WorkflowState.PERSISTED
        assert len(host.presented) == 2
        second_existing, second_incoming = host.presented[1]
        assert second_existing.to_line() == "00:02:00\tC\tZ"
        assert second_incoming.to_line() == "00:02:00\tB\tY"
        assert sidecar.read_text(encoding="utf-8") == "00:01:00\tA\tX\n00:02:00\tB\tY\n"

    def test_refresh_without_moving_asks_again(self, make_workflow, existing_sidecar):
        # playback paused: the refreshed time is the same one
        host = FakeHost("00:01:00", choices=[ResolutionChoice.REFRESH_AND_PROCEED, ResolutionChoice.CANCEL])
        wf = make_workflow(host)

        assert wf.save("B", "Y") is WorkflowState.CANCELLED
        assert len(host.presented) == 2
        assert existing_sidecar.read_text(encoding="utf-8") == "00:01:00\tA\tX\n"

    def test_deferred_second_order(self, make_workflow, sidecar):
        sidecar.write_text("00:01:00\tA\tX\n00:02:00\tC\tZ\n", encoding="utf-8")
        host = FakeHost()
        host.set_now("00:01:00", "00:02:00", "00:03:00")
        wf = make_workflow(host)

        assert wf.save("B", "Y") is WorkflowState.AWAITING_RESOLUTION
        assert wf.resolve(ResolutionChoice.REFRESH_AND_PROCEED) is WorkflowState.AWAITING_RESOLUTION
        assert wf.pending[0].to_line() == "00:02:00\tC\tZ"
        assert wf.resolve(ResolutionChoice.REFRESH_AND_PROCEED) is WorkflowState.PERSISTED
        assert sidecar.read_text(encoding="utf-8") == (
            "00:01:00\tA\tX\n00:02:00\tC\tZ\n00:03:00\tB\tY\n"
        )


class TestWriteFailure:
    """A failed write is reported and the save can be retried."""

    @pytest.fixture
    def failing_replace(self, monkeypatch):
        state = {"fail": True}
        import shot_annote.persistence as persistence

        real_replace = persistence.os.replace

        def replace(src, dst):
            if state["fail"]:
                raise PermissionError("read-only")
            return real_replace(src, dst)

        monkeypatch.setattr(persistence.os, "replace", replace)
        return state

    def test_plain_save_failure(self, make_workflow, sidecar, failing_replace):
        host = FakeHost("00:01:00")
        wf = make_workflow(host)

        assert wf.save("A", "X") is WorkflowState.VALIDATING
        assert host.notifications == [
            (NotifyLevel.ERROR, f"Failed to open file for writing: {sidecar}")
        ]
        assert not sidecar.exists()

    def test_failure_while_resolving_keeps_conflict_pending(self, make_workflow, existing_sidecar, failing_replace):
        host = FakeHost("00:01:00")
        wf = make_workflow(host)
        wf.save("B", "Y")

        assert wf.resolve(ResolutionChoice.PROCEED) is WorkflowState.AWAITING_RESOLUTION
        assert host.levels()[-1] is NotifyLevel.ERROR
        assert existing_sidecar.read_text(encoding="utf-8") == "00:01:00\tA\tX\n"

        failing_replace["fail"] = False
        assert wf.resolve(ResolutionChoice.PROCEED) is WorkflowState.PERSISTED
        assert existing_sidecar.read_text(encoding="utf-8") == "00:01:00\tB\tY\n"

    def test_refresh_retry_does_not_duplicate(self, make_workflow, existing_sidecar, failing_replace):
        host = FakeHost()
        host.set_now("00:01:00", "00:02:00", "00:03:00")
        wf = make_workflow(host)
        wf.save("B", "Y")

        assert wf.resolve(ResolutionChoice.REFRESH_AND_PROCEED) is WorkflowState.AWAITING_RESOLUTION
        failing_replace["fail"] = False
        assert wf.resolve(ResolutionChoice.REFRESH_AND_PROCEED) is WorkflowState.PERSISTED
        assert existing_sidecar.read_text(encoding="utf-8") == "00:01:00\tA\tX\n00:03:00\tB\tY\n"


class TestSidecarContentPreserved:
    """Existing file content comes back unchanged after the next save."""

    def test_hand_written_lines_with_large_minutes_survive_a_save(self, make_workflow, sidecar):
        sidecar.write_text("00:75:00\tLegacy\tWide\n", encoding="utf-8")
        assert make_workflow(FakeHost("00:01:00")).save("A", "X") is WorkflowState.PERSISTED
        assert sidecar.read_text(encoding="utf-8") == "00:01:00\tA\tX\n00:75:00\tLegacy\tWide\n"

    def test_description_with_form_feed_survives_next_save(self, make_workflow, sidecar):
        make_workflow(FakeHost("00:01:00")).save("Cut\x0cto street", "Wide")
        make_workflow(FakeHost("00:02:00")).save("Next", "Close")
        assert sidecar.read_text(encoding="utf-8") == (
            "00:01:00\tCut\x0cto street\tWide\n00:02:00\tNext\tClose\n"
        )


class TestUniqueness:
    def test_no_duplicate_timestamps_after_many_saves(self, make_workflow, sidecar):
        host = FakeHost()
        wf = make_workflow(host)
        script = [
            ("00:01:00", ResolutionChoice.PROCEED),
            ("00:02:00", ResolutionChoice.PROCEED),
            ("00:01:00", ResolutionChoice.PROCEED),
            ("00:02:00", ResolutionChoice.CANCEL),
            ("00:01:00", ResolutionChoice.PROCEED),
        ]
        for i, (now, choice) in enumerate(script):
            host.set_now(now)
            host.choices = [choice]
            wf.save(f"note {i}", "X")

        stamps = [line.split("\t")[0] for line in sidecar.read_text(encoding="utf-8").splitlines()]
        assert len(stamps) == len(set(stamps))
        assert stamps == sorted(stamps)


def test_notifications_are_logged(make_workflow, caplog):
    caplog.set_level(logging.INFO, logger="shot_annote.workflow")
    make_workflow(FakeHost("00:01:00")).save("", "")
    assert MSG_DESCRIPTION_REQUIRED in caplog.text
