# Prompt fragments for the objection letter.
# SYSTEM_INSTRUCTION goes to Gemini (which also gets a response schema);
# JSON_SYSTEM_INSTRUCTION is the system message for chat-completion models,
# which only have the prompt to enforce the JSON contract.

from __future__ import annotations
from typing import List

from .types import Message, ObjectionRequest

CAMPAIGN_CONTEXT = """\
You are an advocacy expert helping citizens of Tamil Nadu challenge Rule 288-A.
CONTEXT: Rule 288-A allows hiring/leasing for regular operations, creating a de facto bar on state procurement.
KEY TRUTH: Existing Chennai GCC (leased) buses exclude women from "Vidiyal Payanam".
"""

CAMPAIGN_STRESS = """\
STRESS: The state MUST purchase and own the fleet for accountability and rural welfare.
ALWAYS INCLUDE: "Public Transit is Public Property" (பொதுப் போக்குவரத்து மக்கள் சொத்து)."""

SYSTEM_INSTRUCTION = (
    CAMPAIGN_CONTEXT
    + "GOAL: If the user provides text, optimize it for legal impact and clarity while keeping "
    "their personal voice. If not, generate from scratch.\n"
    + CAMPAIGN_STRESS
)

JSON_SYSTEM_INSTRUCTION = (
    CAMPAIGN_CONTEXT
    + "GOAL: Generate a formal objection letter based on the user's request.\n"
    + CAMPAIGN_STRESS
    + """

IMPORTANT: You must respond with valid JSON only, in this exact format:
{
  "subject": "Email subject line",
  "body": "Complete letter body"
}"""
)

NOTIFICATION_REF = "Notification No. SRO A-37/2025 dated 8th December 2025 regarding Rule 288-A"


def build_prompt(request: ObjectionRequest) -> str:
    lang_name = request.language.language_name
    if request.has_custom_text:
        mode_text = (
            f'The user has provided their own input: "{request.custom_text}". '
            "Optimize and enhance this text to be a formal legal objection."
        )
    else:
        mode_text = (
            "Generate a new letter from scratch using these concerns: "
            f"{', '.join(c.strip() for c in request.concerns if c.strip())}."
        )

    return f"""Generate/Optimize a formal objection letter in {lang_name} for:
Name: {request.name}
Location: {request.location}
Tone: {request.tone.value}
{mode_text}

Refer to {NOTIFICATION_REF}.
Must include:
1. Objections to hiring buses for regular operations (de facto procurement bar).
2. The failure of Chennai GCC to provide free travel for women.
3. Long-term costs of private dependency vs state ownership.

Output JSON format:
{{
  "subject": "Email subject in {lang_name}",
  "body": "Complete letter body in {lang_name}"
}}"""


def build_messages_for_prompt(prompt: str) -> List[Message]:
    return [
        Message(role="system", content=JSON_SYSTEM_INSTRUCTION),
        Message(role="user", content=prompt),
    ]


def build_messages(request: ObjectionRequest) -> List[Message]:
    return build_messages_for_prompt(build_prompt(request))
