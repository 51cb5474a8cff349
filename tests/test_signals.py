"""
Signal rule tests on hand-built summaries.
"""
from dataclasses import replace

import pytest

from app.services.behavior_engine.config import AnalyzerConfig
from app.services.behavior_engine.metrics import SessionSummary
from app.services.behavior_engine.signals import derive_signals


def signals(**counters):
    return derive_signals(SessionSummary(**counters))


def test_empty_summary_raises_no_signal():
    result = signals()
    assert not any(vars(result).values())


@pytest.mark.parametrize("counters", [
    {"rage_clicks": 1, "total_clicks": 3},
    {"dead_clicks": 1, "total_clicks": 1},
    {"rapid_scrolls": 4},
])
def test_frustration_sources(counters):
    assert signals(**counters).is_frustrated


def test_three_rapid_scrolls_alone_are_not_frustration():
    assert not signals(rapid_scrolls=3).is_frustrated


def test_touch_gestures_mean_mobile():
    assert signals(total_touches=1).is_mobile
    assert signals(swipes=1).is_mobile
    assert signals(pinch_zooms=1).is_mobile
    assert not signals(total_clicks=5).is_mobile


def test_form_submission_or_conversion_completes_goal():
    assert signals(form_submissions=1).completed_goal
    assert signals(conversions=1).completed_goal


def test_exploring_needs_many_scrolls_relative_to_clicks():
    assert signals(total_scrolls=12, total_clicks=2).is_exploring
    assert not signals(total_scrolls=12, total_clicks=4).is_exploring
    assert not signals(total_scrolls=9).is_exploring


def test_completing_the_goal_is_not_exploring():
    assert not signals(total_scrolls=40, form_submissions=1).is_exploring


def test_confused_needs_hesitation_and_reversals():
    assert signals(hesitations=1, scroll_reversals=2).is_confused
    assert not signals(hesitations=1, scroll_reversals=1).is_confused
    assert not signals(scroll_reversals=5).is_confused


def test_engaged_needs_pace_and_duration_without_frustration():
    # 4 actions per minute over one minute
    assert signals(total_clicks=2, total_inputs=2, session_duration=60000).is_engaged
    assert not signals(total_clicks=2, total_inputs=2, session_duration=20000).is_engaged
    assert not signals(total_clicks=1, session_duration=120000).is_engaged
    assert not signals(total_clicks=4, rage_clicks=1, session_duration=60000).is_engaged


def test_signals_are_not_mutually_exclusive():
    result = signals(
        total_scrolls=20, total_clicks=3, rage_clicks=1,
        hesitations=2, scroll_reversals=3, total_touches=1,
    )
    assert result.is_exploring
    assert result.is_frustrated
    assert result.is_confused
    assert result.is_mobile


def test_thresholds_follow_config():
    config = replace(AnalyzerConfig(), EXPLORING_MIN_SCROLLS=3, EXPLORING_SCROLL_CLICK_RATIO=1.0)
    assert derive_signals(SessionSummary(total_scrolls=3, total_clicks=2), config).is_exploring
