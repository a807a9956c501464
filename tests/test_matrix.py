"""
Tests for the matrix editing session: diff, revert, commit.
"""
import pytest

from access_control.core.exceptions import BatchCommitError, UnknownAccessLevelError
from access_control.core.levels import AccessLevel
from access_control.services.matrix import (
    AccessChange, MatrixEditor, build_matrix, diff_matrices,
)
from access_control.services.page_access_service import page_access_service

from conftest import MANAGER_ID, SALES_ID, VIEWER_ID

PAGES = [{"url": "/accounting"}, {"url": "/inventory"}]
ROLES = [{"id": 2}, {"id": 3}]


class RecordingSubmit:
    """Captures batches; fails the first ``failures`` calls."""

    def __init__(self, failures=0):
        self.calls = []
        self.failures = failures

    def __call__(self, changes):
        self.calls.append([c.to_dict() for c in changes])
        if len(self.calls) <= self.failures:
            raise BatchCommitError(changes=len(changes))
        return {"submitted": len(changes)}


class TestBuildAndDiff:

    def test_missing_cells_are_none(self):
        matrix = build_matrix(PAGES, ROLES, [{"page_url": "/inventory", "role_id": 3, "access_level": "edit"}])
        assert matrix == {
            "/accounting": {2: AccessLevel.NONE, 3: AccessLevel.NONE},
            "/inventory": {2: AccessLevel.NONE, 3: AccessLevel.EDIT},
        }

    def test_identical_matrices_have_no_diff(self):
        matrix = build_matrix(PAGES, ROLES, [])
        assert diff_matrices(matrix, matrix) == []

    def test_absent_cell_equals_none(self):
        baseline = {"/accounting": {2: AccessLevel.NONE}}
        assert diff_matrices(baseline, {}) == []

    def test_diff_is_ordered_by_page_then_role(self):
        baseline = build_matrix(PAGES, ROLES, [])
        working = {
            "/accounting": {2: AccessLevel.READ, 3: AccessLevel.CREATE},
            "/inventory": {2: AccessLevel.NONE, 3: AccessLevel.EDIT},
        }
        assert diff_matrices(baseline, working) == [
            AccessChange("/accounting", 2, AccessLevel.READ),
            AccessChange("/accounting", 3, AccessLevel.CREATE),
            AccessChange("/inventory", 3, AccessLevel.EDIT),
        ]


class TestEditor:

    def make_editor(self):
        return MatrixEditor(build_matrix(PAGES, ROLES, []))

    def test_set_level_marks_changes(self):
        editor = self.make_editor()
        assert not editor.has_changes
        editor.set_level("/accounting", 2, "create")
        assert editor.has_changes
        assert editor.level("/accounting", 2) is AccessLevel.CREATE
        assert editor.baseline["/accounting"][2] is AccessLevel.NONE

    def test_set_level_rejects_unknown_token(self):
        editor = self.make_editor()
        with pytest.raises(UnknownAccessLevelError):
            editor.set_level("/accounting", 2, "view")
        assert not editor.has_changes

    def test_setting_back_to_baseline_yields_empty_diff(self):
        editor = self.make_editor()
        editor.set_level("/inventory", 3, "edit")
        editor.set_level("/inventory", 3, "none")
        assert editor.diff() == []
        assert not editor.has_changes

    def test_revert_restores_baseline(self):
        editor = self.make_editor()
        editor.set_level("/accounting", 3, "read")
        editor.revert()
        assert not editor.has_changes
        assert editor.working == editor.baseline

    def test_commit_without_changes_does_not_submit(self):
        editor = self.make_editor()
        submit = RecordingSubmit()
        result = editor.commit(submit)
        assert result.status == "no_changes"
        assert not result.committed
        assert submit.calls == []

    def test_commit_sends_only_changed_cells(self):
        editor = self.make_editor()
        editor.set_level("/accounting", 2, "create")
        submit = RecordingSubmit()

        result = editor.commit(submit)
        assert result.committed
        assert submit.calls == [[{"page_url": "/accounting", "role_id": 2, "access_level": "create"}]]
        assert not editor.has_changes
        assert editor.diff() == []
        assert editor.baseline["/accounting"][2] is AccessLevel.CREATE

    def test_failed_commit_keeps_unsaved_changes(self):
        editor = self.make_editor()
        editor.set_level("/inventory", 2, "read")

        with pytest.raises(BatchCommitError):
            editor.commit(RecordingSubmit(failures=1))
        assert editor.has_changes
        assert editor.baseline["/inventory"][2] is AccessLevel.NONE
        assert len(editor.diff()) == 1

    def test_retry_resubmits_whole_batch(self):
        editor = self.make_editor()
        editor.set_level("/inventory", 2, "read")
        editor.set_level("/accounting", 3, "edit")
        submit = RecordingSubmit(failures=2)

        result = editor.commit_with_retry(submit, attempts=3)
        assert result.committed
        assert len(submit.calls) == 3
        assert submit.calls[0] == submit.calls[2]
        assert len(submit.calls[0]) == 2

    def test_retry_count_defaults_to_settings(self):
        from access_control.core.config import settings

        editor = self.make_editor()
        editor.set_level("/inventory", 2, "read")
        submit = RecordingSubmit(failures=100)
        with pytest.raises(BatchCommitError):
            editor.commit_with_retry(submit)
        assert len(submit.calls) == settings.BULK_COMMIT_RETRIES

    def test_retry_gives_up(self):
        editor = self.make_editor()
        editor.set_level("/inventory", 2, "read")
        with pytest.raises(BatchCommitError):
            editor.commit_with_retry(RecordingSubmit(failures=5), attempts=2)
        assert editor.has_changes


class TestAgainstStore:

    def test_commit_then_reload_has_no_diff(self, db, roles):
        editor = MatrixEditor.from_config(page_access_service.get_config(db))
        editor.set_level("/accounting", MANAGER_ID, "create")
        editor.set_level("/customers", SALES_ID, "edit")
        editor.set_level("/customers", VIEWER_ID, "read")

        editor.commit(lambda changes: page_access_service.bulk_update(db, [c.to_dict() for c in changes]))

        reloaded = MatrixEditor.from_config(page_access_service.get_config(db))
        assert diff_matrices(editor.baseline, reloaded.baseline) == []

    def test_manager_gains_accounting(self, db, roles):
        assert not page_access_service.can_view(db, MANAGER_ID, "/accounting")

        editor = MatrixEditor.from_config(page_access_service.get_config(db))
        editor.set_level("/accounting", MANAGER_ID, "edit")
        editor.commit(lambda changes: page_access_service.bulk_update(db, [c.to_dict() for c in changes]))

        assert page_access_service.can_edit(db, MANAGER_ID, "/accounting")
        assert not page_access_service.can_create(db, MANAGER_ID, "/accounting")

    def test_reload_discards_working_copy(self, db, roles):
        editor = MatrixEditor.from_config(page_access_service.get_config(db))
        editor.set_level("/", SALES_ID, "read")
        editor.reload(page_access_service.get_config(db))
        assert not editor.has_changes
        assert editor.level("/", SALES_ID) is AccessLevel.NONE
