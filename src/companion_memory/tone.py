"""Keyword-based tone classification of user messages."""

from __future__ import annotations

import re

from .models import Tone

# Table order doubles as the tie-break order.
TONE_TRIGGERS: dict[Tone, tuple[str, ...]] = {
    Tone.SAD: (
        "sad", "depressed", "down", "upset", "crying", "tears", "feeling low",
        "unhappy", "melancholy", "gloomy", "hurt", "disappointed", "worried",
        "anxious", "stressed", "frustrated", "can't", "cannot", "won't",
    ),
    Tone.EXCITED: (
        "excited", "amazing", "awesome", "wow", "yes!", "finally", "yay",
        "can't wait", "so happy", "thrilled", "incredible", "fantastic",
        "love it", "best", "greatest", "amazing news",
    ),
    Tone.SARCASTIC: (
        "sure", "obviously", "totally", "great", "wonderful", "perfect",
        "exactly what i wanted", "thanks a lot", "yeah right", "oh really",
    ),
    Tone.ANGRY: (
        "angry", "mad", "furious", "hate", "annoyed", "irritated", "pissed",
        "stupid", "idiot", "sucks", "terrible", "worst", "disgusting",
    ),
    Tone.PLAYFUL: (
        "haha", "lol", "lmao", "funny", "joke", "roast", "tease", "prank",
        "play", "game", "challenge", "bet", "wanna", "gonna",
    ),
    Tone.FORMAL: (
        "sir", "madam", "please", "would you", "could you", "kindly",
        "appreciate", "grateful", "thank you very much", "regarding",
    ),
    Tone.CASUAL: (
        "hey", "yo", "sup", "wassup", "dude", "bro", "lol", "omg",
        "idk", "tbh", "imo", "fr", "ngl",
    ),
}

# Sad and angry may win on a single hit.
NEGATIVE_TONES = frozenset({Tone.SAD, Tone.ANGRY})
MIN_CONFIDENT_SCORE = 2
LONG_MESSAGE_WORDS = 30
SHORT_MESSAGE_WORDS = 5


class ToneClassifier:
    """Maps a message to a coarse tone label.

    Deterministic and side-effect free; always returns a label.
    """

    def __init__(self, triggers: dict[Tone, tuple[str, ...]] | None = None):
        self._triggers = triggers or TONE_TRIGGERS
        self._word_patterns = {
            tone: [re.compile(rf"\b{re.escape(t)}\b", re.IGNORECASE) for t in words]
            for tone, words in self._triggers.items()
        }

    def score(self, message: str) -> dict[Tone, int]:
        """Raw per-tone scores before the confidence gate."""
        lower = message.lower()
        scores: dict[Tone, int] = {tone: 0 for tone in self._triggers}

        for tone, words in self._triggers.items():
            patterns = self._word_patterns[tone]
            scores[tone] = sum(
                1
                for word, pattern in zip(words, patterns)
                if word in lower or pattern.search(message)
            )

        if "!!!" in lower or "???" in lower:
            scores[Tone.EXCITED] = scores.get(Tone.EXCITED, 0) + 2
        if "..." in lower:
            scores[Tone.SAD] = scores.get(Tone.SAD, 0) + 1
        if "?" in lower:
            scores[Tone.CASUAL] = scores.get(Tone.CASUAL, 0) + 1

        word_count = len(message.split(" "))
        if word_count > LONG_MESSAGE_WORDS and not scores.get(Tone.ANGRY):
            scores[Tone.FORMAL] = scores.get(Tone.FORMAL, 0) + 1
        if word_count < SHORT_MESSAGE_WORDS and not scores.get(Tone.EXCITED):
            scores[Tone.CASUAL] = scores.get(Tone.CASUAL, 0) + 1

        return scores

    def detect_tone(self, message: str) -> Tone:
        scores = self.score(message)

        best_tone = Tone.NEUTRAL
        best_score = 0
        for tone, value in scores.items():
            if value > best_score:
                best_tone, best_score = tone, value

        if best_score == 0:
            return Tone.NEUTRAL
        if best_score >= MIN_CONFIDENT_SCORE:
            return best_tone
        if best_score == 1 and best_tone in NEGATIVE_TONES:
            return best_tone
        return Tone.NEUTRAL

    @staticmethod
    def detect_tone_shift(current: str, previous: str | None) -> bool:
        """True when the tone changed since the previous turn."""
        return previous is not None and current != previous
