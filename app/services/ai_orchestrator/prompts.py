"""
Prompt templates for LLM session analysis.
No external dependencies - simple string formatting with validation.
"""

from dataclasses import dataclass
from typing import List, Optional

from ..behavior_engine.metrics import SemanticSession
from ..behavior_engine.renderer import render_transcript


@dataclass
class PromptTemplate:
    """Simple template with variable injection"""
    system: str
    user: str

    def format(self, **kwargs) -> tuple[str, str]:
        """Format both system and user prompts with provided variables"""
        try:
            system_msg = self.system.format(**kwargs)
            user_msg = self.user.format(**kwargs)
            return system_msg, user_msg
        except KeyError as e:
            raise ValueError(f"Missing required template variable: {e}")


# --- CORE PROMPT TEMPLATES ---

UX_RESEARCHER = PromptTemplate(
    system="""You are an expert UX Researcher analyzing a recorded user session. Your job is to identify what the user was trying to do, what problems they encountered, and rate the overall experience.

IMPORTANT RULES:
1. ONLY reference events that actually appear in the session log
2. Use the EXACT timestamps from the logs when referencing events
3. Pay special attention to friction indicators like [RAGE CLICK], [NO RESPONSE], [CONSOLE ERROR], etc.
4. Be specific about element names from the logs
5. Factor in hover/hesitation patterns: high hesitations suggest UI confusion or unclear CTAs
6. Console and network errors indicate technical failures impacting UX
7. High idle time or tab switches suggest disengagement or waiting on slow responses
8. Scroll reversals indicate the user is searching for something they can't find
9. Pinch zooms on mobile suggest content isn't responsive or text is too small
10. Cleared inputs suggest form friction or user changing their mind

Respond with a single JSON object with these keys:
- "summary": 2-3 sentence executive summary of the session
- "user_intent": what the user was trying to accomplish
- "tags": 3-5 tags based ONLY on evidence in the logs
- "went_well": list of things that worked smoothly
- "frustration_points": list of {{"timestamp": "[MM:SS]", "issue": "..."}}
- "ux_rating": integer from 1 to 10, where 10 is perfect UX
- "description": a narrative paragraph of the user's journey in order

SESSION CONTEXT:
{session_context}""",
    user="""Analyze this user session log and provide insights:

SESSION LOG:
{session_log}

Based on this log, analyze:
1. What was the user trying to accomplish?
2. What friction points did they encounter?
3. What worked well?
4. Overall UX rating (1-10)"""
)


# Signal -> context line; only raised signals are included
SIGNAL_DESCRIPTIONS = {
    "is_exploring": "- User appears to be EXPLORING (lots of scrolling, few clicks)",
    "is_frustrated": "- User appears FRUSTRATED (rage clicks, dead clicks, rapid scrolls)",
    "is_engaged": "- User appears ENGAGED (good interaction patterns)",
    "is_confused": "- User appears CONFUSED (hesitations, back-and-forth navigation)",
    "is_mobile": "- User is on MOBILE device (touch events detected)",
    "completed_goal": "- User COMPLETED GOAL (form submission or conversion detected)",
}


def build_session_context(session: SemanticSession) -> str:
    """Structured metrics block the LLM reads before the transcript."""
    s = session.summary
    width, height = session.viewport_size

    lines: List[Optional[str]] = [
        f"Page: {session.page_url or 'Unknown'}",
        f'Title: "{session.page_title}"' if session.page_title else None,
        f"Duration: {session.total_duration}",
        f"Total Events: {session.event_count}",
        f"Viewport: {width}x{height}",
        "",
        "=== CLICK METRICS ===",
        f"- Total Clicks: {s.total_clicks}",
        f"- Rage Clicks: {s.rage_clicks}",
        f"- Dead/Unresponsive Clicks: {s.dead_clicks}",
        f"- Double Clicks: {s.double_clicks}",
        f"- Right Clicks (Context Menu): {s.right_clicks}",
        "",
        "=== INPUT METRICS ===",
        f"- Total Input Events: {s.total_inputs}",
        f"- Abandoned Inputs: {s.abandoned_inputs}",
        f"- Cleared Inputs: {s.cleared_inputs}",
        f"- Form Submissions: {s.form_submissions}",
        "",
        "=== SCROLL METRICS ===",
        f"- Total Scrolls: {s.total_scrolls}",
        f"- Max Scroll Depth: {s.scroll_depth_max}%",
        f"- Rapid Scrolls (frustration): {s.rapid_scrolls}",
        f"- Scroll Reversals (searching behavior): {s.scroll_reversals}",
        "",
        "=== HOVER & ATTENTION METRICS ===",
        f"- Total Hovers: {s.total_hovers}",
        f"- Hesitations (hover without action): {s.hesitations}",
        f"- Hover Time on Interactive Elements: {s.hover_time}ms",
        "",
        "=== TOUCH METRICS (MOBILE) ===",
        f"- Total Touches: {s.total_touches}",
        f"- Swipes: {s.swipes}",
        f"- Pinch Zooms: {s.pinch_zooms}",
        "",
        "=== MEDIA METRICS ===",
        f"- Total Media Interactions: {s.total_media_interactions}",
        f"- Video Plays: {s.video_plays}",
        f"- Video Pauses: {s.video_pauses}",
        "",
        "=== SELECTION & CLIPBOARD ===",
        f"- Text Selections: {s.total_selections}",
        f"- Copy Events: {s.copy_events}",
        f"- Paste Events: {s.paste_events}",
        "",
        "=== ERROR METRICS ===",
        f"- Console Errors: {s.console_errors}",
        f"- Console Warnings: {s.console_warnings}",
        f"- Network Errors: {s.network_errors}",
        f"- Slow Requests: {s.slow_requests}",
        f"- Slow Page Loads: {s.slow_page_loads}",
        "",
        "=== ENGAGEMENT METRICS ===",
        f"- Tab Switches (left page): {s.tab_switches}",
        f"- Idle Time (no interaction): {s.idle_time}ms",
        f"- Conversions: {s.conversions}",
        "",
        "=== VIEWPORT METRICS ===",
        f"- Resize Events: {s.resize_events}",
        f"- Orientation Changes: {s.orientation_changes}",
        "",
        "=== BEHAVIORAL SIGNALS ===",
    ]

    signals = session.behavioral_signals
    lines.extend(
        description for name, description in SIGNAL_DESCRIPTIONS.items()
        if getattr(signals, name)
    )
    return "\n".join(line for line in lines if line is not None)


def build_session_analysis_prompt(session: SemanticSession) -> tuple[str, str]:
    """
    Build the (system, user) prompt pair for one analyzed session.

    The metrics block goes into the system prompt; the transcript, one
    "[MM:SS] action: details flags" line per log entry, into the user prompt.
    """
    return UX_RESEARCHER.format(
        session_context=build_session_context(session),
        session_log=render_transcript(session.logs),
    )
