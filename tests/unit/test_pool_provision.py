"""Unit tests for slot provisioning."""

import json

import pytest

from subagent.constants import DEFAULT_LOCK_NAME
from subagent.core import locks
from subagent.core.pool import iter_slots, provision_slots

TEMPLATE = {"folders": [{"path": "."}], "settings": {"files.autoSave": "off"}}
WAKEUP = "---\ndescription: wake up\n---\n"


def _provision(root, count, **kwargs):
    kwargs.setdefault("workspace_template", TEMPLATE)
    kwargs.setdefault("wakeup_content", WAKEUP)
    return provision_slots(root, count, **kwargs)


def _make_locked(root, *ordinals):
    for ordinal in ordinals:
        slot_dir = root / f"subagent-{ordinal}"
        slot_dir.mkdir(parents=True)
        (slot_dir / f"subagent-{ordinal}.code-workspace").write_text("{}")
        locks.lock(slot_dir)


def _names(paths):
    return [path.name for path in paths]


class TestProvisionSlots:
    def test_empty_pool_creates_numbered_slots(self, tmp_path):
        """Provisioning into an empty pool yields subagent-1..N."""
        root = tmp_path / "pool"

        result = _provision(root, 3)

        assert _names(result.created) == ["subagent-1", "subagent-2", "subagent-3"]
        assert result.skipped_existing == []
        assert result.skipped_locked == []
        assert result.total_unlocked == 3
        for ordinal in (1, 2, 3):
            slot_dir = root / f"subagent-{ordinal}"
            workspace = json.loads((slot_dir / f"subagent-{ordinal}.code-workspace").read_text())
            assert workspace == TEMPLATE
            assert (slot_dir / "wakeup.chatmode.md").read_text() == WAKEUP
            assert not locks.is_locked(slot_dir)

    def test_reuses_existing_unlocked_slots_first(self, tmp_path):
        root = tmp_path / "pool"
        _provision(root, 2)

        result = _provision(root, 3)

        assert _names(result.skipped_existing) == ["subagent-1", "subagent-2"]
        assert _names(result.created) == ["subagent-3"]

    def test_locked_slots_are_skipped_and_new_ones_follow_highest(self, tmp_path):
        """Locked 1..K with count M creates K+1..K+M."""
        root = tmp_path / "pool"
        _make_locked(root, 1, 2)

        result = _provision(root, 2)

        assert _names(result.created) == ["subagent-3", "subagent-4"]
        assert _names(result.skipped_locked) == ["subagent-1", "subagent-2"]
        assert result.skipped_existing == []

    def test_skipped_locked_includes_slots_beyond_the_requested_count(self, tmp_path):
        root = tmp_path / "pool"
        _provision(root, 1)
        _make_locked(root, 2)

        result = _provision(root, 1)

        assert _names(result.skipped_existing) == ["subagent-1"]
        assert _names(result.skipped_locked) == ["subagent-2"]
        assert result.created == []

    def test_force_rewrites_locked_slots_in_place(self, tmp_path):
        """Force on a fully locked pool of K with count K never goes above K."""
        root = tmp_path / "pool"
        _make_locked(root, 1, 2, 3)

        result = _provision(root, 3, force=True)

        assert _names(result.created) == ["subagent-1", "subagent-2", "subagent-3"]
        assert result.skipped_locked == []
        assert [slot.ordinal for slot in iter_slots(root)] == [1, 2, 3]
        for ordinal in (1, 2, 3):
            slot_dir = root / f"subagent-{ordinal}"
            assert not locks.is_locked(slot_dir)
            assert json.loads((slot_dir / f"subagent-{ordinal}.code-workspace").read_text()) == TEMPLATE

    def test_force_leaves_uncounted_locked_slots_alone(self, tmp_path):
        root = tmp_path / "pool"
        _make_locked(root, 1, 2)

        result = _provision(root, 1, force=True)

        assert _names(result.created) == ["subagent-1"]
        assert _names(result.skipped_locked) == ["subagent-2"]
        assert locks.is_locked(root / "subagent-2")

    def test_unlocked_slot_missing_workspace_is_backfilled(self, tmp_path):
        root = tmp_path / "pool"
        (root / "subagent-1").mkdir(parents=True)

        result = _provision(root, 1)

        assert _names(result.skipped_existing) == ["subagent-1"]
        assert (root / "subagent-1" / "subagent-1.code-workspace").exists()

    def test_existing_workspace_is_not_overwritten_without_force(self, tmp_path):
        root = tmp_path / "pool"
        _provision(root, 1)
        workspace = root / "subagent-1" / "subagent-1.code-workspace"
        workspace.write_text('{"folders": []}')

        _provision(root, 1)

        assert workspace.read_text() == '{"folders": []}'

    def test_dry_run_touches_nothing(self, tmp_path):
        root = tmp_path / "pool"

        result = _provision(root, 2, dry_run=True)

        assert _names(result.created) == ["subagent-1", "subagent-2"]
        assert not root.exists()

    def test_dry_run_force_keeps_locks(self, tmp_path):
        root = tmp_path / "pool"
        _make_locked(root, 1)

        result = _provision(root, 1, force=True, dry_run=True)

        assert _names(result.created) == ["subagent-1"]
        assert locks.is_locked(root / "subagent-1")

    def test_custom_lock_name(self, tmp_path):
        root = tmp_path / "pool"
        slot_dir = root / "subagent-1"
        slot_dir.mkdir(parents=True)
        locks.lock(slot_dir, "busy.flag")
        locks.lock(slot_dir, DEFAULT_LOCK_NAME)

        result = _provision(root, 1, lock_name="busy.flag")

        assert _names(result.skipped_locked) == ["subagent-1"]
        assert _names(result.created) == ["subagent-2"]

    def test_non_slot_directories_are_ignored(self, tmp_path):
        root = tmp_path / "pool"
        (root / "subagent-x").mkdir(parents=True)
        (root / "notes").mkdir()
        (root / "subagent-7.txt").write_text("")

        result = _provision(root, 1)

        assert _names(result.created) == ["subagent-1"]

    @pytest.mark.parametrize("count", [0, -1, True, 1.5])
    def test_rejects_non_positive_counts(self, tmp_path, count):
        with pytest.raises(ValueError, match="subagents must be a positive integer"):
            _provision(tmp_path / "pool", count)

    def test_defaults_come_from_templates_dir(self, tmp_path):
        templates = tmp_path / "templates"
        templates.mkdir()
        (templates / "subagent.code-workspace").write_text('{\n  // slot\n  "folders": [{"path": "."}],\n}\n')
        (templates / "wakeup.chatmode.md").write_text(WAKEUP)

        provision_slots(tmp_path / "pool", 1, templates_dir=templates)

        slot_dir = tmp_path / "pool" / "subagent-1"
        assert json.loads((slot_dir / "subagent-1.code-workspace").read_text()) == {"folders": [{"path": "."}]}
        assert (slot_dir / "wakeup.chatmode.md").read_text() == WAKEUP
