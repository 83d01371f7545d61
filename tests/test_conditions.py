from datetime import datetime, timedelta, timezone

import pytest

from app.automation.conditions import (
    ConditionOperator,
    all_conditions_match,
    get_field_value,
    match_condition,
    resolve_operator,
    ticket_snapshot,
)
from app.models.task import Task


def cond(field, operator, value=None):
    return {"field": field, "operator": operator, "value": value}


class TestFieldLookup:
    def test_dotted_path_over_dicts(self):
        ticket = {"assignee": {"name": "Bob"}}
        assert get_field_value(ticket, "assignee.name") == "Bob"

    def test_missing_link_yields_none(self):
        assert get_field_value({"assignee": None}, "assignee.name") is None
        assert get_field_value({}, "department.name") is None

    def test_attribute_access(self):
        task = Task(ticket_number="T-1", status="open")
        assert get_field_value(task, "status") == "open"


class TestOperators:
    def test_equals_is_case_insensitive(self):
        assert match_condition(cond("status", "equals", "OPEN"), {"status": "open"})
        assert match_condition(cond("status", "equals", "open"), {"status": "Open"})

    def test_equals_numeric_field_against_text_literal(self):
        assert match_condition(cond("assignee_id", "equals", "7"), {"assignee_id": 7})
        assert not match_condition(cond("assignee_id", "equals", "8"), {"assignee_id": 7})

    def test_not_equals(self):
        assert match_condition(cond("priority", "not_equals", "low"), {"priority": "high"})
        assert not match_condition(cond("priority", "not_equals", "HIGH"), {"priority": "high"})

    def test_in_splits_and_trims_the_list(self):
        assert match_condition(cond("priority", "in", "a, b, c"), {"priority": "B"})
        assert not match_condition(cond("priority", "in", "a, b, c"), {"priority": "d"})

    def test_in_with_missing_field_is_false(self):
        assert not match_condition(cond("priority", "in", "a,b"), {})

    def test_changed_without_changed_fields_is_false(self):
        assert not match_condition(cond("status", "changed"), {"status": "open"})

    def test_changed_reads_both_key_spellings(self):
        assert match_condition(cond("status", "changed"), {"status": "open", "_changed_fields": ["status"]})
        assert match_condition(cond("status", "changed"), {"status": "open", "_changedFields": ["status"]})
        assert not match_condition(cond("priority", "changed"), {"_changed_fields": ["status"]})

    def test_contains_and_not_contains(self):
        ticket = {"title": "Printer is ON FIRE"}
        assert match_condition(cond("title", "contains", "fire"), ticket)
        assert not match_condition(cond("title", "not_contains", "Fire"), ticket)
        assert match_condition(cond("title", "not_contains", "smoke"), ticket)

    def test_contains_on_missing_value_searches_empty_string(self):
        assert not match_condition(cond("title", "contains", "x"), {"title": None})
        assert match_condition(cond("title", "not_contains", "x"), {})

    @pytest.mark.parametrize("operator,value,expected", [
        ("greater_than", "5", True),
        ("greater_than", "10", False),
        ("less_than", "11", True),
        ("greater_than_or_equal", "10", True),
        ("less_than_or_equal", "9", False),
    ])
    def test_numeric_comparisons(self, operator, value, expected):
        assert match_condition(cond("score", operator, value), {"score": 10}) is expected

    def test_numeric_comparison_with_non_numeric_is_false(self):
        assert not match_condition(cond("score", "greater_than", "abc"), {"score": 10})
        assert not match_condition(cond("score", "less_than", "5"), {"score": None})

    def test_enum_like_strings_do_not_coerce(self):
        assert not match_condition(cond("status", "greater_than", "0"), {"status": "on_hold"})

    def test_naive_dates_compare_as_utc_epoch_millis(self):
        created = datetime(2025, 1, 1)
        assert match_condition(cond("created_at", "<=", "1735689600000"), {"created_at": created})
        assert match_condition(cond("created_at", ">=", "1735689600000"), {"created_at": created})
        assert not match_condition(cond("created_at", "<", "1735689600000"), {"created_at": created})

    def test_aware_dates_keep_their_offset(self):
        created = datetime(2025, 1, 1, 1, 0, tzinfo=timezone(timedelta(hours=1)))
        assert match_condition(cond("created_at", "<=", "1735689600000"), {"created_at": created})
        assert match_condition(cond("created_at", ">=", "1735689600000"), {"created_at": created})

    @pytest.mark.parametrize("literal", ["inf", "-inf", "nan", "NaN", "infinity", "1_000", "0x-1", "12abc"])
    def test_non_js_numeric_spellings_are_nan(self, literal):
        assert not match_condition(cond("score", "less_than", literal), {"score": 10})
        assert not match_condition(cond("score", "greater_than", literal), {"score": 10})

    @pytest.mark.parametrize("literal, score", [
        ("Infinity", 10),
        ("0x1F", 30),
        ("0b101", 4),
        ("0o17", 14),
        (".5", 0),
        ("1e2", 99),
    ])
    def test_js_numeric_spellings_are_numbers(self, literal, score):
        assert match_condition(cond("score", "less_than", literal), {"score": score})

    def test_is_empty(self):
        assert match_condition(cond("assignee_id", "is_empty"), {"assignee_id": None})
        assert match_condition(cond("title", "is_empty"), {"title": ""})
        assert not match_condition(cond("assignee_id", "is_empty"), {"assignee_id": 0})
        assert match_condition(cond("assignee_id", "is_not_empty"), {"assignee_id": 3})

    def test_aliases(self):
        assert resolve_operator(">") == ConditionOperator.GREATER_THAN
        assert resolve_operator("is_null") == ConditionOperator.IS_EMPTY
        assert resolve_operator(" EQUALS ") == ConditionOperator.EQUALS
        assert match_condition(cond("score", ">=", "3"), {"score": 3})


class TestFailClosed:
    def test_unknown_operator_is_false_and_logged(self, capture_logger):
        assert match_condition(cond("status", "regex", ".*"), {"status": "open"}, capture_logger) is False
        assert any("regex" in m for m in capture_logger.messages("warning"))

    def test_missing_operator_is_false(self):
        assert match_condition({"field": "status", "value": "open"}, {"status": "open"}) is False

    def test_evaluation_error_is_false_and_logged(self, capture_logger):
        class Exploding:
            @property
            def status(self):
                raise RuntimeError("boom")

        assert match_condition(cond("status", "equals", "open"), Exploding(), capture_logger) is False
        assert capture_logger.messages("error")


class TestConditionSet:
    def test_empty_set_matches(self):
        assert all_conditions_match({"status": "open"}, [])
        assert all_conditions_match({"status": "open"}, None)

    def test_all_must_match(self):
        ticket = {"status": "open", "priority": "high"}
        assert all_conditions_match(ticket, [cond("status", "equals", "open"), cond("priority", "equals", "high")])
        assert not all_conditions_match(ticket, [cond("status", "equals", "open"), cond("priority", "equals", "low")])

    def test_one_unknown_operator_fails_the_set(self):
        ticket = {"status": "open"}
        assert not all_conditions_match(ticket, [cond("status", "equals", "open"), cond("status", "regex", "o")])


class TestSnapshot:
    def test_snapshot_copies_loaded_columns_only(self):
        task = Task(ticket_number="T-9", status="open", priority="high")
        data = ticket_snapshot(task)
        assert data["ticket_number"] == "T-9"
        assert data["status"] == "open"
        assert "assignee" not in data

    def test_dicts_pass_through(self):
        ticket = {"status": "open"}
        assert ticket_snapshot(ticket) is ticket
