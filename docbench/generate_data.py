"""
Synthetic document generator.

Builds the in-memory corpus that is loaded into both engines. Text is made
of English dictionary words; every document carries a tag set and an
attribute bag with one sparsely present optional key.
"""

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from tqdm import tqdm

OPTIONAL_KEY_PROBABILITY = 0.7
OPTIONAL_KEY_BUCKETS = 5
MAX_AGE_DAYS = 365

WORDS = [
    "time", "year", "people", "way", "day", "man", "thing", "woman", "life", "child",
    "world", "school", "state", "family", "student", "group", "country", "problem", "hand", "part",
    "place", "case", "week", "company", "system", "program", "question", "work", "government", "number",
    "night", "point", "home", "water", "room", "mother", "area", "money", "story", "fact",
    "month", "lot", "right", "study", "book", "eye", "job", "word", "business", "issue",
    "side", "kind", "head", "house", "service", "friend", "father", "power", "hour", "game",
    "line", "end", "member", "law", "car", "city", "community", "name", "president", "team",
    "minute", "idea", "kid", "body", "information", "back", "parent", "face", "others", "level",
    "office", "door", "health", "person", "art", "war", "history", "party", "result", "change",
    "morning", "reason", "research", "girl", "guy", "moment", "air", "teacher", "force", "education",
    "good", "new", "first", "last", "long", "great", "little", "own", "other", "old",
    "big", "high", "different", "small", "large", "next", "early", "young", "important", "few",
    "public", "bad", "same", "able", "open", "quiet", "bright", "simple", "green", "quick",
    "make", "take", "find", "give", "tell", "call", "keep", "leave", "bring", "begin",
    "show", "hear", "play", "run", "move", "live", "believe", "hold", "write", "stand",
    "learn", "follow", "build", "create", "read", "spend", "grow", "offer", "remember", "consider",
]

TAG_WORDS = [
    "rust", "python", "go", "java", "kotlin", "swift", "database", "search", "cloud", "linux",
    "docker", "kubernetes", "security", "network", "storage", "cache", "async", "web", "api", "testing",
]

BUSINESS_VERBS = [
    "implement", "utilize", "integrate", "streamline", "optimize", "evolve", "transform", "embrace",
    "enable", "orchestrate", "leverage", "reinvent", "aggregate", "architect", "enhance", "incentivize",
]
BUSINESS_ADJECTIVES = [
    "clicks-and-mortar", "value-added", "vertical", "proactive", "robust", "revolutionary", "scalable",
    "leading-edge", "innovative", "intuitive", "strategic", "e-business", "mission-critical", "sticky",
    "one-to-one", "best-of-breed", "frictionless", "wireless", "B2C", "granular",
]
BUSINESS_NOUNS = [
    "synergies", "web-readiness", "paradigms", "markets", "partnerships", "infrastructures", "platforms",
    "initiatives", "channels", "eyeballs", "communities", "solutions", "e-services", "action-items",
    "portals", "niches", "technologies", "content", "supply-chains", "convergence",
]

DOMAIN_SUFFIXES = ["com", "org", "net", "io", "info", "biz", "co", "dev"]


@dataclass
class Document:
    title: str
    content: str
    created_at: datetime
    tags: list = field(default_factory=list)
    attributes: dict = field(default_factory=dict)

    def to_dict(self):
        """Canonical structured encoding shared by both engines."""
        return {
            "title": self.title,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
            "tags": list(self.tags),
            "attributes": self.attributes,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            title=data["title"],
            content=data["content"],
            created_at=datetime.fromisoformat(data["created_at"]),
            tags=list(data["tags"]),
            attributes=data["attributes"],
        )


def generate_sentence(rng, min_words=5, max_words=20):
    """Generate a random sentence using dictionary words"""
    num_words = rng.randint(min_words, max_words)
    sentence_words = rng.choices(WORDS, k=num_words)

    sentence_words[0] = sentence_words[0].capitalize()

    punctuation = rng.choice(['.', '!', '?'])
    return ' '.join(sentence_words) + punctuation


def generate_title(rng):
    """Generate a random title (shorter sentence)"""
    return generate_sentence(rng, min_words=2, max_words=8).rstrip('.!?')


def generate_business_phrase(rng):
    return " ".join((
        rng.choice(BUSINESS_VERBS),
        rng.choice(BUSINESS_ADJECTIVES),
        rng.choice(BUSINESS_NOUNS),
    ))


def generate_attributes(index, rng):
    attributes = {
        "att0": rng.randrange(0, 1000),
        "att1": generate_business_phrase(rng),
        "att2": {
            "nested_key": rng.choice(DOMAIN_SUFFIXES),
            "nested_bool": rng.random() < 0.5,
        },
        "att3": rng.choices(WORDS, k=rng.randint(2, 4)),
    }
    # Absent, never None: both engines must see a missing key.
    if rng.random() < OPTIONAL_KEY_PROBABILITY:
        attributes[f"att_opt_{index % OPTIONAL_KEY_BUCKETS}"] = " ".join(rng.choices(WORDS, k=3))
    return attributes


def generate_document(index, rng, now):
    """Generate a single document for position `index` in the corpus"""
    num_sentences = rng.randint(3, 10)
    content = ' '.join(generate_sentence(rng) for _ in range(num_sentences))

    return Document(
        title=generate_title(rng),
        content=content,
        created_at=now - timedelta(seconds=rng.uniform(0, MAX_AGE_DAYS * 86400)),
        tags=rng.choices(TAG_WORDS, k=rng.randint(1, 5)),
        attributes=generate_attributes(index, rng),
    )


def generate_documents(count, seed=None, progress=True, now=None):
    """Generate `count` documents. Pass `seed` (and `now`) for a reproducible corpus."""
    if count < 0:
        raise ValueError(f"count must not be negative, got {count}")

    rng = random.Random(seed)
    if now is None:
        now = datetime.now(timezone.utc)

    docs = []
    with tqdm(total=count, desc="Generating documents", unit="doc", disable=not progress) as pb:
        for index in range(count):
            docs.append(generate_document(index, rng, now))
            pb.update(1)
    return docs
