"""Tests for calculation log context binding."""

from uuid import uuid4

import structlog

from ghg_engine.core.logging import calculation_log_context


def test_fields_are_bound_inside_the_block_only() -> None:
    activity_id = uuid4()

    with calculation_log_context(activity_id=activity_id, activity_type="steam", user_id=None):
        bound = structlog.contextvars.get_contextvars()
        assert bound["activity_id"] == str(activity_id)
        assert bound["activity_type"] == "steam"
        assert "user_id" not in bound

    after = structlog.contextvars.get_contextvars()
    assert "activity_id" not in after
    assert "activity_type" not in after


def test_nested_contexts_restore_outer_values() -> None:
    with calculation_log_context(company_id="outer"):
        with calculation_log_context(company_id="inner"):
            assert structlog.contextvars.get_contextvars()["company_id"] == "inner"
        assert structlog.contextvars.get_contextvars()["company_id"] == "outer"
