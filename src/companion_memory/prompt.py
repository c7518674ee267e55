"""Reply prompt assembly for the route layer."""

from __future__ import annotations

from .models import MemorySnapshot, Message, Role, Tone, TurnContext

ASSISTANT_NAME = "Alex"
MIN_PROMPT_CONFIDENCE = 0.3
MAX_PROMPT_FACTS = 10

TONE_GUIDANCE: dict[Tone, str] = {
    Tone.SAD: "Respond with empathy and warmth. Acknowledge their feelings.",
    Tone.EXCITED: "Match their energy! Be enthusiastic and positive.",
    Tone.SARCASTIC: "Respond playfully with light humor, keep it friendly.",
    Tone.ANGRY: "Stay calm and understanding. Acknowledge their frustration.",
    Tone.PLAYFUL: "Be fun and lighthearted.",
    Tone.FORMAL: "Use structured, polite language.",
    Tone.CASUAL: "Be relaxed and conversational.",
    Tone.NEUTRAL: "Maintain a balanced, friendly tone.",
}


def build_memory_context(memory: MemorySnapshot) -> str | None:
    """One line of known preferences and confident facts, or None."""
    parts: list[str] = []
    prefs = memory.preferences
    if prefs.interests:
        parts.append(f"User is interested in: {', '.join(prefs.interests)}")
    if prefs.likes:
        parts.append(f"User likes: {', '.join(prefs.likes)}")
    if prefs.dislikes:
        parts.append(f"User dislikes: {', '.join(prefs.dislikes)}")

    facts = [f.text for f in memory.facts if f.confidence > MIN_PROMPT_CONFIDENCE][:MAX_PROMPT_FACTS]
    if facts:
        parts.append(f"Important facts about the user: {'; '.join(facts)}")

    return "; ".join(parts) if parts else None


def format_history(messages: list[Message]) -> str:
    return "\n".join(
        f"{'User' if m.role == Role.USER else ASSISTANT_NAME}: {m.content}" for m in messages
    )


def build_reply_prompt(message: str, turn: TurnContext) -> str:
    memory_context = build_memory_context(turn.memory)
    history = format_history(turn.context)

    lines = [f"You are {ASSISTANT_NAME}, a friendly conversational companion."]
    lines.append(f"- {memory_context}" if memory_context else "- This is a new conversation.")
    if turn.memory.name:
        lines.append(f"- The user's name is {turn.memory.name}.")
    for summary in turn.memory.recent_summaries:
        lines.append(f"- Earlier conversation: {summary.summary}")
    lines.append(f"Detected user tone: {turn.tone.value}. {TONE_GUIDANCE[turn.tone]}")

    return (
        "\n".join(lines)
        + f"\n\nConversation:\n{history}\n\nUser: {message}\n{ASSISTANT_NAME}:"
    )
