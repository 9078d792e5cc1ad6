"""Prompt builders for the composer's AI assist actions. Each returns (prompt, system_prompt)."""

from typing import Callable, Optional

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert LinkedIn ghostwriter. Write in plain text without markdown, "
    "optimized for engagement on LinkedIn."
)


def generate_post(topic: str) -> tuple[str, str]:
    prompt = (
        f'Generate a professional LinkedIn post about "{topic}".\n\n'
        "Requirements:\n"
        "- 2-3 paragraphs\n"
        "- Engaging and professional tone\n"
        "- Include a call-to-action\n"
        "- Use relevant LinkedIn best practices\n"
        "- Max 3000 characters\n\n"
        "Just return the post content, no extra text."
    )
    return prompt, DEFAULT_SYSTEM_PROMPT


def generate_hashtags(content: str) -> tuple[str, str]:
    prompt = (
        "Generate 5-8 relevant LinkedIn hashtags for this post. "
        "Return only the hashtags separated by spaces.\n\n"
        f'Post: "{content}"'
    )
    return prompt, DEFAULT_SYSTEM_PROMPT


def rewrite_post(content: str, tone: str) -> tuple[str, str]:
    prompt = (
        f"Rewrite this LinkedIn post in a {tone} tone. "
        "Keep the main message but adjust the language and style.\n\n"
        f'Original: "{content}"\n\n'
        "Just return the rewritten post, no extra text."
    )
    return prompt, DEFAULT_SYSTEM_PROMPT


def improve_post(content: str) -> tuple[str, str]:
    prompt = (
        "Analyze and improve this LinkedIn post for better engagement. Suggest improvements to:\n"
        "1. Hook/opening\n"
        "2. Call-to-action\n"
        "3. Formatting/readability\n"
        "4. Use of emoji\n\n"
        f'Post: "{content}"\n\n'
        "Return the improved version."
    )
    return prompt, DEFAULT_SYSTEM_PROMPT


def generate_post_ideas(topic: str) -> tuple[str, str]:
    prompt = (
        f'Generate 5 creative LinkedIn post ideas about "{topic}".\n\n'
        "Format as:\n"
        + "".join(f"{i}. [Idea {i}]\n" for i in range(1, 6))
        + "\nEach should be 1-2 sentences describing the post concept."
    )
    return prompt, DEFAULT_SYSTEM_PROMPT


def generate_from_framework(topic: str, system_prompt: Optional[str]) -> tuple[str, str]:
    prompt = (
        "Generate a LinkedIn post about the following topic/context:\n\n"
        f'"{topic}"\n\n'
        "Follow the structure and rules in your system instructions exactly. "
        "Return only the post content."
    )
    return prompt, system_prompt or DEFAULT_SYSTEM_PROMPT


def generate_first_comment(content: str) -> tuple[str, str]:
    prompt = (
        "Generate an optimal first comment for this LinkedIn post. The comment should:\n"
        "- Add value (a relevant insight, additional context, or thought-provoking question)\n"
        "- Encourage engagement\n"
        "- Be 1-3 sentences\n\n"
        f'Post: "{content}"\n\n'
        "Just return the comment text, no extra text."
    )
    return prompt, DEFAULT_SYSTEM_PROMPT


# action -> (builder, required input field)
ASSIST_ACTIONS: dict[str, tuple[Callable[..., tuple[str, str]], str]] = {
    "post": (generate_post, "topic"),
    "hashtags": (generate_hashtags, "content"),
    "rewrite": (rewrite_post, "content"),
    "improve": (improve_post, "content"),
    "ideas": (generate_post_ideas, "topic"),
    "framework": (generate_from_framework, "topic"),
    "first-comment": (generate_first_comment, "content"),
}


def build_assist_prompt(
    action: str,
    topic: Optional[str] = None,
    content: Optional[str] = None,
    tone: Optional[str] = None,
    system_prompt: Optional[str] = None,
) -> tuple[str, str]:
    """Resolve an assist action to its prompt pair; raises KeyError/ValueError on bad input."""
    builder, field = ASSIST_ACTIONS[action]
    value = topic if field == "topic" else content
    if not value or not value.strip():
        raise ValueError(f"{field} is required for '{action}'")
    if action == "rewrite":
        return rewrite_post(value, tone or "professional")
    if action == "framework":
        return generate_from_framework(value, system_prompt)
    return builder(value)
