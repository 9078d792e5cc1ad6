"""Best-practice scoring for LinkedIn post drafts: 0-100 score, letter grade, tips."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import regex

EMPTY_TIP = "Start writing your post!"

HOOK_WORDS = regex.compile(r"^(I |Here|Stop|This|What|How|Why|The |Most |Don't)")
HOOK_ENDINGS = regex.compile(r"[?!:]$")
CTA_PATTERN = regex.compile(
    r"(\?$|comment|share|agree|thoughts|what do you think|let me know|drop a|tag someone|repost)",
    regex.IGNORECASE,
)
HASHTAG_PATTERN = regex.compile(r"#\w+")
EMOJI_PATTERN = regex.compile(r"[\p{Emoji_Presentation}\p{Extended_Pictographic}]")
URL_PATTERN = regex.compile(r"https?://\S+")
PARAGRAPH_BREAK = regex.compile(r"\n\s*\n")

GRADE_BANDS = [(90, "A+"), (80, "A"), (70, "B"), (60, "C"), (40, "D")]


@dataclass(frozen=True)
class ContentScore:
    score: int
    grade: str
    tips: list[str] = field(default_factory=list)


def _score_hook(first_line: str) -> tuple[int, Optional[str]]:
    if 0 < len(first_line) <= 100:
        if HOOK_ENDINGS.search(first_line) or HOOK_WORDS.match(first_line):
            return 20, None
        return 10, "Start with a strong hook: use a question, bold statement, or story opener"
    if len(first_line) > 100:
        return 5, "Keep your opening line short and punchy (under 100 characters)"
    return 0, None


def _score_length(char_count: int) -> tuple[int, Optional[str]]:
    if 800 <= char_count <= 1800:
        return 20, None
    if 400 <= char_count < 800:
        return 15, "Longer posts (800-1800 chars) tend to get more engagement"
    if 1800 < char_count <= 2500:
        return 15, None
    if char_count < 400:
        return 8, "Your post is quite short, aim for at least 800 characters"
    return 10, "Very long posts can lose attention, consider trimming to under 2500 chars"


def _score_structure(break_count: int) -> tuple[int, Optional[str]]:
    if break_count >= 2:
        return 15, None
    if break_count == 1:
        return 10, "Add more paragraph breaks for better readability"
    return 3, "Break your post into short paragraphs with blank lines between them"


def _score_cta(text: str, last_line: str) -> tuple[int, Optional[str]]:
    if CTA_PATTERN.search(last_line):
        return 15, None
    if CTA_PATTERN.search(text):
        return 10, "Move your call-to-action to the last line for maximum impact"
    return 0, "End with a question or call-to-action to drive engagement"


def _score_hashtags(count: int) -> tuple[int, Optional[str]]:
    if 3 <= count <= 5:
        return 10, None
    if 1 <= count < 3:
        return 7, "Use 3-5 hashtags for optimal reach"
    if count > 5:
        return 5, "Too many hashtags can look spammy, stick to 3-5"
    return 0, "Add 3-5 relevant hashtags to increase discoverability"


def _score_emoji(count: int) -> tuple[int, Optional[str]]:
    if 1 <= count <= 5:
        return 5, None
    if count > 5:
        return 2, "Too many emojis can be distracting, use 1-5 strategically"
    return 1, "A few emojis can make your post more eye-catching"


def _score_links(has_url: bool, first_comment: Optional[str]) -> tuple[int, Optional[str]]:
    if not has_url:
        return 10, None
    if first_comment:
        return 7, "Links in the post body hurt reach, you have a first comment, so move the link there"
    return 0, "Links in the post body reduce reach by ~40%, move links to the first comment instead"


def _score_first_comment(first_comment: Optional[str]) -> tuple[int, Optional[str]]:
    if first_comment and first_comment.strip():
        return 5, None
    return 0, None


def grade_for(score: int) -> str:
    for floor, grade in GRADE_BANDS:
        if score >= floor:
            return grade
    return "F"


def score_post(content: Optional[str], first_comment: Optional[str] = None) -> ContentScore:
    """
    Score a post body (and optional first comment) against LinkedIn best practices.
    Pure and deterministic; never raises for string or None input.
    """
    if not content or not content.strip():
        return ContentScore(score=0, grade="-", tips=[EMPTY_TIP])

    text = content.strip()
    lines = [line for line in text.split("\n") if line.strip()]
    first_line = lines[0] if lines else ""
    last_line = lines[-1] if lines else ""

    factors = [
        _score_hook(first_line),
        _score_length(len(text)),
        _score_structure(len(PARAGRAPH_BREAK.findall(text))),
        _score_cta(text, last_line),
        _score_hashtags(len(HASHTAG_PATTERN.findall(text))),
        _score_emoji(len(EMOJI_PATTERN.findall(text))),
        _score_links(bool(URL_PATTERN.search(text)), first_comment),
        _score_first_comment(first_comment),
    ]
    score = min(sum(points for points, _ in factors), 100)
    tips = [tip for _, tip in factors if tip]
    return ContentScore(score=score, grade=grade_for(score), tips=tips)
