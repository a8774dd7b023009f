"""Tests for the alias plan, generated-plan normalization and the fallback chain.

@file test_fill_plan.py
@description Unmatched fields stay out of the plan, matched fields without a
             value become suggestions, denylisted keys are skipped, and no
             field is ever both filled and blocked.
"""

from __future__ import annotations

import asyncio

from autofill.fill_plan import (
    DEFAULT_AUTOFILL_FIELDS,
    SENSITIVE_BLOCKED,
    PlanStrategy,
    build_alias_fill_plan,
    build_field_selector,
    build_safe_field_plan,
    coerce_fields,
    plan_from_generative_actions,
    run_plan_strategies,
)
from autofill.form_models import FillPlanResult
from autofill.label_aliases import build_alias_index
from autofill.page_scanner import build_field_descriptor
from autofill.profile import Profile
from autofill.value_resolver import build_autofill_value_map

ALIASES = build_alias_index()


def _plan(fields, profile: Profile) -> FillPlanResult:
    return build_alias_fill_plan(fields, ALIASES, build_autofill_value_map(profile))


def _assert_disjoint(result: FillPlanResult) -> None:
    filled = {entry.field for entry in result.filled}
    assert not filled & set(result.blocked)


def test_email_field_is_filled_with_alias_confidence(profile: Profile) -> None:
    result = _plan([{"field_id": "email", "label": "Email", "type": "text", "selector": "#email"}], profile)

    assert len(result.actions) == 1
    action = result.actions[0]
    assert (action.action, action.selector, action.value) == ("fill", "#email", "ada@example.com")
    assert action.confidence == 0.75
    assert [(entry.field, entry.value, entry.confidence) for entry in result.filled] == [
        ("email", "ada@example.com", 0.75)
    ]
    assert result.suggestions == []
    assert result.blocked == []


def test_missing_value_becomes_suggestion() -> None:
    result = _plan([{"field_id": "email", "label": "Email", "type": "text"}], Profile())
    assert result.filled == []
    assert result.actions == []
    assert [(s.field, s.suggestion) for s in result.suggestions] == [
        ("email", "No data available for email")
    ]


def test_cover_letter_and_unknown_fields_are_left_out(profile: Profile) -> None:
    result = _plan(
        [
            {"field_id": "cl", "label": "Cover Letter", "type": "textarea"},
            {"field_id": "colour", "label": "Favourite colour", "type": "text"},
        ],
        profile,
    )
    assert result.is_empty()
    assert result.actions == []


def test_empty_input_gives_empty_lists(profile: Profile) -> None:
    for fields in ([], None):
        assert _plan(fields, profile).to_dict() == {
            "filled": [],
            "suggestions": [],
            "blocked": [],
            "actions": [],
        }


def test_checkbox_select_and_radio_actions(profile: Profile) -> None:
    result = _plan(
        [
            {"field_id": "work_auth", "label": "Authorized to work?", "type": "checkbox"},
            {"field_id": "country", "label": "Country", "type": "select", "id": "country"},
            {"field_id": "sponsor", "label": "Visa sponsorship", "type": "radio"},
        ],
        profile,
    )
    actions = {action.field: action for action in result.actions}
    assert actions["work_auth"].action == "check"
    assert actions["work_auth"].selector == '[name="work_auth"]'
    assert actions["country"].action == "select"
    assert actions["country"].selector == "#country"
    assert actions["country"].value == "United Kingdom"
    assert result.blocked == ["sponsor"]
    _assert_disjoint(result)


def test_duplicate_fields_are_planned_once(profile: Profile) -> None:
    field = {"field_id": "email", "label": "Email", "type": "text", "selector": "#email"}
    result = _plan([field, dict(field)], profile)
    assert len(result.filled) == 1


def test_default_field_set_is_matched(profile: Profile) -> None:
    result = _plan(DEFAULT_AUTOFILL_FIELDS, profile)
    filled = {entry.field: entry.value for entry in result.filled}
    assert filled["first_name"] == "Ada"
    assert filled["phone_code"] == "+44"
    assert filled["linkedin"] == "https://www.linkedin.com/in/ada"
    assert "address" in {s.field for s in result.suggestions}
    _assert_disjoint(result)


def test_field_selector_fallbacks() -> None:
    [with_id, with_name, bare] = coerce_fields(
        [
            {"id": "first", "field_id": "fn"},
            {"name": "last name"},
            {"label": "Nothing to go on"},
        ]
    )
    assert build_field_selector(with_id) == "#first"
    assert build_field_selector(with_name) == '[name="last name"]'
    assert build_field_selector(bare) is None


def test_field_without_selector_is_blocked(profile: Profile) -> None:
    result = _plan([{"label": "Email"}], profile)
    assert result.filled == []
    assert result.blocked == ["Email"]


def test_result_keeps_filled_and_blocked_disjoint() -> None:
    result = FillPlanResult()
    assert result.record_fill("email", "a@b.c")
    result.record_block("email")
    assert result.filled == []
    assert not result.record_fill("email", "a@b.c")
    assert result.blocked == ["email"]


def test_generated_plan_is_normalized() -> None:
    result = plan_from_generative_actions(
        [
            {"field_id": "email", "action": "fill", "value": "a@b.c", "confidence": 0.9},
            {"field_id": "gender", "action": "select", "value": "Female", "requires_user_review": True},
            {"field_id": "cover", "label": "Cover letter", "action": "fill", "value": "Dear..."},
            {"field_id": "x", "action": "dance"},
            {"field_id": "y", "action": "skip"},
            {"field_id": "years", "action": "fill", "value": 5},
            "not a mapping",
        ],
        ALIASES,
        warnings=["Salary field left blank"],
    )
    assert [(e.field, e.value, e.confidence) for e in result.filled] == [
        ("email", "a@b.c", 0.9),
        ("years", "5", None),
    ]
    assert result.blocked == ["gender", "x"]
    assert [a.field for a in result.actions] == ["email", "gender", "years"]
    assert result.actions[1].requires_user_review is True
    assert [(s.field, s.suggestion) for s in result.suggestions] == [
        ("note", "Salary field left blank")
    ]
    _assert_disjoint(result)


def test_safe_field_plan(profile: Profile) -> None:
    result = build_safe_field_plan(profile)
    filled = {entry.field: entry.confidence for entry in result.filled}
    assert filled["first_name"] == 0.98
    assert filled["email"] == 0.97
    assert filled["phone"] == 0.8
    assert "address" not in filled
    assert result.blocked == list(SENSITIVE_BLOCKED)
    assert all(action.selector is None and action.field_id for action in result.actions)


def _static(result: FillPlanResult):
    return lambda: result


def test_first_plan_with_fills_wins(profile: Profile) -> None:
    async def generated():
        return build_safe_field_plan(profile)

    outcome = asyncio.run(
        run_plan_strategies(
            [
                PlanStrategy("alias", _static(FillPlanResult())),
                PlanStrategy("generative", generated),
                PlanStrategy("static", _static(FillPlanResult()), last_resort=True),
            ]
        )
    )
    assert outcome.strategy == "generative"
    assert outcome.result.has_fills


def test_partial_plan_suppresses_last_resort(profile: Profile) -> None:
    partial = FillPlanResult()
    partial.suggest("email", "No data available for email")
    outcome = asyncio.run(
        run_plan_strategies(
            [
                PlanStrategy("alias", _static(partial)),
                PlanStrategy("static", lambda: build_safe_field_plan(profile), last_resort=True),
            ]
        )
    )
    assert outcome.strategy == "alias"
    assert outcome.result is partial


def test_failing_and_empty_strategies_fall_through(profile: Profile, caplog) -> None:
    def broken():
        raise RuntimeError("provider exploded")

    outcome = asyncio.run(
        run_plan_strategies(
            [
                PlanStrategy("alias", _static(FillPlanResult())),
                PlanStrategy("generative", broken),
                PlanStrategy("nothing", lambda: None),
                PlanStrategy("static", lambda: build_safe_field_plan(profile), last_resort=True),
            ]
        )
    )
    assert outcome.strategy == "static"
    assert "provider exploded" in caplog.text


def test_no_strategies_gives_empty_plan() -> None:
    outcome = asyncio.run(run_plan_strategies([]))
    assert outcome.strategy is None
    assert outcome.result.is_empty()


AUTH_LEGEND = "Are you legally authorized to work in the United States?"
SPONSOR_LEGEND = "Will you now or in the future require sponsorship?"


def _radio_option(raw_index: int, label: str, legend: str, *, dom_id=None, name=None, value=None):
    raw = {
        "rawIndex": raw_index,
        "tag": "input",
        "type": "radio",
        "id": dom_id,
        "name": name,
        "label": label,
        "ariaName": "",
        "describedBy": "",
        "placeholder": "",
        "required": True,
        "optionValue": value,
        "nearbyPrompts": [{"source": "legend", "text": legend}],
    }
    return build_field_descriptor(raw, index=raw_index)


def _checked(result: FillPlanResult):
    return [action.selector for action in result.actions if action.action == "check"]


def test_radio_group_with_ids_checks_only_the_matching_option(profile: Profile) -> None:
    group = [
        _radio_option(0, "No", AUTH_LEGEND, dom_id="auth_no"),
        _radio_option(1, "Yes", AUTH_LEGEND, dom_id="auth_yes"),
    ]
    result = _plan(group, profile)

    assert _checked(result) == ["#auth_yes"]
    assert [(e.field, e.value) for e in result.filled] == [("auth_yes", "Yes")]
    assert result.blocked == []
    _assert_disjoint(result)


def test_radio_group_sharing_a_name_targets_the_option_value(profile: Profile) -> None:
    group = [
        _radio_option(0, "Yes", AUTH_LEGEND, name="work_auth", value="yes"),
        _radio_option(1, "No", AUTH_LEGEND, name="work_auth", value="no"),
    ]
    assert [option.selector for option in group] == [
        'input[name="work_auth"][value="yes"]',
        'input[name="work_auth"][value="no"]',
    ]

    result = _plan(group, profile)

    assert _checked(result) == ['input[name="work_auth"][value="yes"]']
    assert [e.field for e in result.filled] == ["work_auth"]
    assert result.blocked == []


def test_radio_group_answers_no_when_the_profile_does(profile: Profile) -> None:
    group = [
        _radio_option(0, "Yes", SPONSOR_LEGEND, name="sponsor", value="true"),
        _radio_option(1, "No", SPONSOR_LEGEND, name="sponsor", value="false"),
    ]
    result = _plan(group, profile)
    assert _checked(result) == ['input[name="sponsor"][value="false"]']


def test_radio_option_value_alone_can_carry_the_answer(profile: Profile) -> None:
    group = [
        _radio_option(0, "Not authorized", AUTH_LEGEND, name="auth", value="false"),
        _radio_option(1, "Authorized", AUTH_LEGEND, name="auth", value="true"),
    ]
    result = _plan(group, profile)
    assert _checked(result) == ['input[name="auth"][value="true"]']


def test_radio_group_without_a_matching_option_is_blocked_once(profile: Profile) -> None:
    group = [
        _radio_option(0, "Citizen", AUTH_LEGEND, dom_id="auth_citizen"),
        _radio_option(1, "Permanent resident", AUTH_LEGEND, dom_id="auth_resident"),
    ]
    result = _plan(group, profile)
    assert result.actions == []
    assert result.filled == []
    assert result.blocked == ["auth_citizen"]
