"""Fixed-vocabulary topic tagging."""

TOPIC_VOCABULARY: tuple[str, ...] = (
    "anime",
    "sports",
    "technology",
    "music",
    "movies",
    "books",
    "food",
    "travel",
    "work",
    "school",
    "family",
    "friends",
    "gaming",
    "programming",
    "art",
    "science",
    "politics",
)


def extract_topics(text: str, vocabulary: tuple[str, ...] = TOPIC_VOCABULARY) -> list[str]:
    """Return vocabulary terms found as substrings, in vocabulary order."""
    lower = text.lower()
    topics: list[str] = []
    for topic in vocabulary:
        if topic in lower and topic not in topics:
            topics.append(topic)
    return topics
