"""
In-memory stand-ins for the LLM client.
"""

GOOD_REPLY = {
    "summary": "The user tried to submit the form and got stuck.",
    "user_intent": "Complete checkout",
    "tags": ["checkout", "rage-click"],
    "went_well": ["Page loaded quickly"],
    "frustration_points": [{"timestamp": "[00:00]", "issue": "Submit button did not respond"}],
    "ux_rating": 3,
    "description": "The user landed on checkout and clicked Submit repeatedly.",
}


class FakeLLM:
    """Records prompts and answers with a canned reply or error."""
    model = "fake-model"

    def __init__(self, reply=None, error=None):
        self.reply = reply if reply is not None else dict(GOOD_REPLY)
        self.error = error
        self.calls = []

    async def complete_json(self, system_prompt, user_prompt, max_retries=2):
        self.calls.append((system_prompt, user_prompt))
        if self.error:
            raise self.error
        return self.reply
