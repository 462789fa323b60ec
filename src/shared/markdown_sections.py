import re

_SECTION_HEADER_RE = re.compile(r"^## (.+)$", re.MULTILINE)

# Field name -> header alternatives, matched at the start of a "## " line.
EXPANSION_SECTIONS = {
    "overview": r"Overview",
    "features": r"(?:Key Features|Mechanics)(?: / (?:Key Features|Mechanics))?",
    "goals": r"(?:Goals|Objectives)(?: / (?:Goals|Objectives))?",
    "challenges": r"(?:Potential )?Challenges",
    "next_steps": r"Next Steps",
}


def extract_sections(text: str) -> list[str]:
    """Return the level-two markdown headers of text, in order."""
    return [match.group(1).strip() for match in _SECTION_HEADER_RE.finditer(text)]


def parse_expansion_structure(text: str) -> dict[str, str]:
    """Pull the body of each known expansion section out of markdown text."""
    structure: dict[str, str] = {}
    for field, header in EXPANSION_SECTIONS.items():
        pattern = re.compile(rf"^## {header}[ \t]*\n([\s\S]*?)(?=\n## |\Z)", re.MULTILINE)
        match = pattern.search(text)
        if match:
            structure[field] = match.group(1).strip()
    return structure


def diff_sections(original: str, reorganized: str) -> dict[str, list[str]]:
    """Compare section headers before and after a reorganization."""
    before = extract_sections(original)
    after = extract_sections(reorganized)
    return {
        "sections_added": [s for s in after if s not in before],
        "sections_removed": [s for s in before if s not in after],
        "sections_reorganized": [s for s in before if s in after and after.index(s) != before.index(s)],
    }
