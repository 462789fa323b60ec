"""
Prompt templates for classification and idea transformation.
"""
from typing import Optional, Sequence

CATEGORIES = ("game", "saas", "tool", "story", "mechanic", "hardware", "ip", "brand", "ux", "personal")

DEFAULT_MUTATION_COUNT = 8
DEFAULT_DETAIL_LEVEL = "detailed"


def _tag_list(tags: Optional[Sequence[str]]) -> str:
    return ", ".join(tags) if tags else "none"


def classification(text: str, open_brace: bool = True) -> str:
    """
    Classification prompt. With open_brace the prompt ends inside the JSON
    object so that a '}' stop sequence terminates generation cleanly.
    """
    prompt = f"""Classify this idea into one category and suggest 2-4 relevant tags.

Idea: "{text}"

Categories: {", ".join(CATEGORIES)}

Rules:
- Choose the single best category
- Tags should be specific and relevant (2-4 tags)
- Use lowercase for category and tags

Example response:
{{
  "category": "game",
  "tags": ["rpg", "fantasy", "multiplayer"]
}}

Response:"""
    return prompt + "\n{" if open_brace else prompt


def mutations(idea_text: str, category: Optional[str] = None, tags: Optional[Sequence[str]] = None,
              count: Optional[int] = None, focus: Optional[str] = None) -> str:
    count = count or DEFAULT_MUTATION_COUNT
    focus_block = f"\n\nFocus area: {focus}" if focus else ""
    return f"""You are an idea generation assistant. Given an idea, generate {count} creative variations or mutations.

Original Idea:
{idea_text}

Category: {category or "general"}
Tags: {_tag_list(tags)}

Generate {count} variations that explore:
- Different angles or perspectives
- Alternative implementations
- Different target audiences
- Different business models
- Different technologies or approaches

For each variation, provide:
1. A brief title (2-5 words)
2. A 1-2 sentence description of how it differs from the original
3. Key differences or innovations

Return as JSON array:
[
  {{
    "title": "Variation Title",
    "description": "How this variation differs...",
    "differences": ["Key difference 1", "Key difference 2"]
  }},
  ...
]{focus_block}"""


def expansion(idea_text: str, category: Optional[str] = None, tags: Optional[Sequence[str]] = None,
              detail_level: Optional[str] = None) -> str:
    return f"""You are an idea development assistant. Expand the following brief idea into a comprehensive description.

Original Idea:
{idea_text}

Category: {category or "general"}
Tags: {_tag_list(tags)}

Expand this idea with the following structure:

## Overview
A clear, concise summary of the idea (2-3 sentences).

## Key Features / Mechanics
List the main features, mechanics, or core components.

## Goals / Objectives
What this idea aims to achieve.

## Potential Challenges
Identify potential obstacles or challenges.

## Next Steps
Suggest initial steps to explore or develop this idea.

Preserve the original meaning and intent. Add detail and structure without changing the core concept.
Detail level: {detail_level or DEFAULT_DETAIL_LEVEL}"""


def reorganization(idea_text: str, category: Optional[str] = None, tags: Optional[Sequence[str]] = None,
                   preserve_sections: Optional[Sequence[str]] = None,
                   target_structure: Optional[Sequence[str]] = None) -> str:
    structure = "\n- ".join(target_structure) if target_structure else "Organize into logical sections with clear headings"
    preserved = "\n- ".join(preserve_sections) if preserve_sections else "None specified"
    return f"""You are an idea organization assistant. Reorganize the following idea into a clean, well-structured format while preserving ALL information.

Original Idea:
{idea_text}

Category: {category or "general"}
Tags: {_tag_list(tags)}

CRITICAL REQUIREMENTS:
1. Preserve ALL information - do not remove or summarize any content
2. Organize into logical sections with clear headings
3. Remove redundancy but keep all unique points
4. Maintain original meaning and nuance
5. Use markdown formatting (headings, lists, emphasis)

Target Structure:
- {structure}

Sections to preserve exactly (if any):
- {preserved}

Reorganize the content into a clear, structured format. Use appropriate markdown headings and formatting."""
