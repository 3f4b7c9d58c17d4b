"""
Compatibility scoring between a viewer and a candidate post.

The score is a weighted blend of four sub-scores, each in [0, 1]:
- questionnaire similarity between the viewer and the post's author
- audio-feature similarity between the viewer's learned taste and the song
- overlap of the viewer's learned mood tags with the post's mood tags
- an engagement bonus for shared matches and similar posting moods

Everything here is pure and deterministic: no I/O, no clock, no randomness.
Weights come from settings so they can be tuned without code changes.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Set

import numpy as np

from songmatch.core.config import Settings, get_settings
from songmatch.models.domain import (
    AudioFeatures,
    EngagementHistory,
    MusicPreferences,
    PostRecord,
    Questionnaire,
    UserProfile,
)

NEUTRAL_SCORE = 0.5

_EXACT_OR_JACCARD_FIELDS = ("mood_genre", "preferred_mood_tag")
_EXACT_OR_HALF_FIELDS = ("discovery_frequency",)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _tokens(text: str) -> Set[str]:
    return {word for word in text.lower().split() if len(word) > 2}


def text_similarity(text_a: str, text_b: str) -> float:
    """
    Jaccard similarity of the word sets of two texts.

    Words are lowercased and words of two characters or fewer are ignored.
    Two texts with no usable words score 0.
    """
    words_a = _tokens(text_a)
    words_b = _tokens(text_b)
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def _field_similarity(name: str, value_a: str, value_b: str) -> float:
    if name in _EXACT_OR_HALF_FIELDS:
        return 1.0 if value_a == value_b else 0.5
    if name in _EXACT_OR_JACCARD_FIELDS and value_a.lower() == value_b.lower():
        return 1.0
    return text_similarity(value_a, value_b)


def questionnaire_similarity(
    questionnaire_a: Questionnaire,
    questionnaire_b: Questionnaire,
    field_weights: Dict[str, float]
) -> float:
    """
    Weighted similarity over the questionnaire fields answered on both sides.

    Args:
        questionnaire_a: First user's answers
        questionnaire_b: Second user's answers
        field_weights: Weight per questionnaire field

    Returns:
        Weighted mean similarity, or 0 when no field is comparable
    """
    score = 0.0
    total_weight = 0.0

    for name, weight in field_weights.items():
        value_a = getattr(questionnaire_a, name, None)
        value_b = getattr(questionnaire_b, name, None)
        if not value_a or not value_b:
            continue

        score += _field_similarity(name, value_a, value_b) * weight
        total_weight += weight

    if total_weight == 0:
        return 0.0
    return score / total_weight


def _feature_similarity(name: str, value_a: float, value_b: float) -> float:
    if name == "tempo":
        largest = max(value_a, value_b)
        if largest <= 0:
            return 1.0 if value_a == value_b else 0.0
        return max(0.0, 1.0 - abs(value_a - value_b) / largest)
    return 1.0 - abs(value_a - value_b)


def audio_feature_similarity(
    preferences: Optional[MusicPreferences],
    features: Optional[AudioFeatures],
    feature_weights: Dict[str, float]
) -> float:
    """
    Similarity between a learned audio-feature vector and a song's features.

    Only features present on both sides are compared; the result is the
    weighted mean over those features, so identical vectors always score 1.
    Without a learned vector, song features, or any shared feature the
    score is neutral.

    This is not a plain weighted sum over all five features. Dividing by the
    weights actually compared means a learned ``{valence: 0.5}`` against a
    song with ``valence 0.5`` scores 1.0, not the 0.25 weight share, and no
    shared feature scores 0.5, not 0.
    """
    if preferences is None or preferences.audio_features is None or features is None:
        return NEUTRAL_SCORE

    learned = preferences.audio_features.present()
    song = features.present()

    shared = [name for name in feature_weights if name in learned and name in song]
    if not shared:
        return NEUTRAL_SCORE

    similarities = np.array([_feature_similarity(name, learned[name], song[name]) for name in shared])
    weights = np.array([feature_weights[name] for name in shared])
    if weights.sum() <= 0:
        return NEUTRAL_SCORE

    return _clamp(float(np.average(similarities, weights=weights)))


def _lowered(tags: Iterable[str]) -> Set[str]:
    return {tag.lower() for tag in tags if tag}


def mood_overlap(preferences: Optional[MusicPreferences], post: PostRecord) -> float:
    """
    Share of mood tags the viewer's learned tags have in common with the post.

    ``|V & P| / max(|V|, |P|)``, neutral when either side has no tags.
    """
    viewer_tags = _lowered(preferences.mood_tags) if preferences else set()
    post_tags = _lowered(post.mood_tags or ([post.mood] if post.mood else []))

    if not viewer_tags or not post_tags:
        return NEUTRAL_SCORE

    return len(viewer_tags & post_tags) / max(len(viewer_tags), len(post_tags))


def engagement_bonus(
    viewer: Optional[EngagementHistory],
    author: Optional[EngagementHistory]
) -> float:
    """0.1 per shared matched user plus 0.2 x posted-mood similarity, capped at 1."""
    if viewer is None or author is None:
        return 0.0

    bonus = 0.0

    if viewer.matched_users and author.matched_users:
        common = set(viewer.matched_users) & set(author.matched_users)
        bonus += 0.1 * len(common)

    if viewer.posted_moods and author.posted_moods:
        bonus += 0.2 * text_similarity(
            " ".join(viewer.posted_moods),
            " ".join(author.posted_moods)
        )

    return _clamp(bonus)


@dataclass(frozen=True)
class ScoringWeights:
    """Blend weights of the four sub-scores plus their inner weights."""
    questionnaire: float = 0.40
    audio: float = 0.30
    mood: float = 0.20
    engagement: float = 0.10
    questionnaire_fields: Dict[str, float] = field(default_factory=lambda: {
        "weekend_soundtrack": 25,
        "mood_genre": 25,
        "discovery_frequency": 20,
        "preferred_mood_tag": 20,
        "favorite_song_memory": 10,
    })
    audio_features: Dict[str, float] = field(default_factory=lambda: {
        "valence": 0.25,
        "energy": 0.25,
        "danceability": 0.20,
        "acousticness": 0.15,
        "tempo": 0.15,
    })

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ScoringWeights":
        settings = settings or get_settings()
        return cls(
            questionnaire=settings.WEIGHT_QUESTIONNAIRE,
            audio=settings.WEIGHT_AUDIO,
            mood=settings.WEIGHT_MOOD,
            engagement=settings.WEIGHT_ENGAGEMENT,
            questionnaire_fields=dict(settings.QUESTIONNAIRE_FIELD_WEIGHTS),
            audio_features=dict(settings.AUDIO_FEATURE_WEIGHTS),
        )


@dataclass(frozen=True)
class ScoreBreakdown:
    questionnaire: float
    audio: float
    mood: float
    engagement: float
    total: float


class CompatibilityScorer:
    """
    Scores a candidate post for a viewer.

    Args:
        weights: Scoring weights; defaults to the configured ones
    """

    def __init__(self, weights: Optional[ScoringWeights] = None):
        self.weights = weights or ScoringWeights.from_settings()

    def breakdown(
        self,
        viewer: UserProfile,
        post: PostRecord,
        author: UserProfile
    ) -> ScoreBreakdown:
        """
        Compute every sub-score and the blended total.

        Args:
            viewer: User the feed is built for
            post: Candidate post
            author: Author of the candidate post

        Returns:
            ScoreBreakdown with the total clamped to [0, 1]
        """
        w = self.weights

        questionnaire = questionnaire_similarity(
            viewer.questionnaire, author.questionnaire, w.questionnaire_fields
        )
        audio = audio_feature_similarity(
            viewer.music_preferences, post.song.audio_features, w.audio_features
        )
        mood = mood_overlap(viewer.music_preferences, post)
        engagement = engagement_bonus(viewer.engagement_history, author.engagement_history)

        total = (
            w.questionnaire * questionnaire
            + w.audio * audio
            + w.mood * mood
            + w.engagement * engagement
        )

        return ScoreBreakdown(
            questionnaire=questionnaire,
            audio=audio,
            mood=mood,
            engagement=engagement,
            total=_clamp(total),
        )

    def score(self, viewer: UserProfile, post: PostRecord, author: UserProfile) -> float:
        return self.breakdown(viewer, post, author).total
