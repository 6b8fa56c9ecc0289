"""Document transforms: canned restructuring frameworks appended to a request.

Only the selected transforms are sent, so the default request stays small.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Literal, get_args

TransformType = Literal["pyramid", "coin", "developer", "business", "management", "cosmos", "cringe"]

TRANSFORM_TYPES: tuple[str, ...] = get_args(TransformType)

TRANSFORM_NAMES: dict[str, str] = {
    "pyramid": "Pyramid",
    "coin": "COIN",
    "developer": "Developer",
    "business": "Business",
    "management": "Management",
    "cosmos": "Cosmos",
    "cringe": "Cringe",
}

TRANSFORM_DESCRIPTIONS: dict[str, str] = {
    "pyramid": "Top-down structure (Minto)",
    "coin": "Context-Observation-Insight-Next",
    "developer": "Technical documentation format",
    "business": "Business communication style",
    "management": "Management briefing format",
    "cosmos": "3D spatial knowledge constellation",
    "cringe": "Attack weak arguments & claims",
}

_PYRAMID = """\
# PYRAMID - Minto Pyramid Principle Document Transformer

**TRANSFORM THE ENTIRE NOTE. NO POINTS LEFT BEHIND. NO QUESTIONS.**

1. Extract every claim, piece of evidence and example in the note.
2. Lead with the single governing conclusion (the answer).
3. Group the supporting arguments beneath it (MECE: no overlaps, no gaps).
4. Order each group logically and put the evidence under its argument.
5. Check that every original point appears somewhere in the pyramid."""

_COIN = """\
# COIN - Context-Observation-Insight-Next Steps Document Transformer

**TRANSFORM THE ENTIRE NOTE. NO POINTS LEFT BEHIND. NO QUESTIONS.**

Sort every piece of information into exactly one section:
- **Context**: background, stakeholders, problem statement, current state.
- **Observation**: facts, data and events, stated without interpretation.
- **Insight**: what the observations mean, patterns, implications.
- **Next Steps**: concrete actions with owners and dates where known.
Keep the four sections in this order and drop nothing."""

_DEVELOPER = """\
# DEVELOPER - Technical Documentation Transformer

**TRANSFORM THE ENTIRE NOTE INTO DEVELOPER DOCUMENTATION. NO INFORMATION DROPPED. NO QUESTIONS.**

Structure the note as:
- **Overview**: what this is and why it exists, readable in 30 seconds.
- **Architecture / Concepts**: components and how they interact.
- **Usage**: setup steps, commands and code samples in fenced blocks.
- **Reference**: options, parameters, APIs and configuration in tables.
- **Troubleshooting / Open Issues**: known problems, caveats and TODOs.
Use precise technical language and keep every original detail."""

_BUSINESS = """\
# BUSINESS - Executive Business Communication Transformer

**TRANSFORM THE ENTIRE NOTE INTO BUSINESS-READY COMMUNICATION. NO INFORMATION DROPPED. NO QUESTIONS.**

- Open with an **Executive Summary**: bottom line first, then the key metrics.
- Follow with **Business Impact**: ROI, cost, revenue and risk, quantified where possible.
- Then **Supporting Detail** grouped by theme.
- Close with **Recommendation & Next Steps**, each with an owner.
Write in plain, confident business language without jargon."""

_MANAGEMENT = """\
# MANAGEMENT - Executive Briefing Transformer

**TRANSFORM THE ENTIRE NOTE INTO A CRISPY MANAGEMENT BRIEFING. NO DROPS. NO QUESTIONS.**

CRISPY = Concise, Relevant, Insightful, Scannable, Precise.
1. **Status at a glance**: on track / at risk / off track, a one-sentence summary, the key metric and the ask.
2. **Key numbers**: every figure compared against target or last period.
3. **Decisions needed**: surfaced explicitly, never buried.
4. **Actions**: who, what and when for each item."""

_COSMOS = """\
# COSMOS - Knowledge Constellation Architect

**TRANSFORM THE ENTIRE NOTE INTO A COSMIC KNOWLEDGE MAP. NO CONCEPTS LEFT BEHIND. NO QUESTIONS.**

- Classify each concept as a Star (core idea), Planet (major theme), Moon (supporting detail), Asteroid (loose fact) or Comet (open question).
- Place planets in orbit around the star they depend on and moons around their planet.
- Group related systems into named constellations.
- Describe the relationships between constellations.
- Every concept in the note must appear on the map."""

_CRINGE = """\
# CRINGE - Critical Review & Intelligent Negative Gauntlet Engine

**ANALYZE THE DOCUMENT DIRECTLY. ATTACK WEAK ARGUMENTS. NO QUESTIONS. NO CONVERSATION.**

1. Extract every claim, argument and assertion.
2. Rate each one for logical strength and evidence.
3. Attack each weakness: unsupported claims, fallacies, vague language, missing counter-arguments.
4. Give a concrete fix for every issue found.
5. End with an overall verdict and the three most important repairs."""

TRANSFORM_PROMPTS: dict[str, str] = {
    "pyramid": _PYRAMID,
    "coin": _COIN,
    "developer": _DEVELOPER,
    "business": _BUSINESS,
    "management": _MANAGEMENT,
    "cosmos": _COSMOS,
    "cringe": _CRINGE,
}


def get_transform_prompt(selected: Iterable[str]) -> str:
    """Combined instructions for the selected transforms, or "" when none are selected.

    Prompts are emitted in the fixed order of `TRANSFORM_TYPES` whatever
    order they were selected in. Unknown names raise ValueError.
    """
    chosen = set(selected)
    unknown = chosen.difference(TRANSFORM_TYPES)
    if unknown:
        raise ValueError(f"Unknown transform(s): {', '.join(sorted(unknown))}")
    if not chosen:
        return ""

    prompts = [TRANSFORM_PROMPTS[t] for t in TRANSFORM_TYPES if t in chosen]
    if len(prompts) > 1:
        intro = f"Transform and restructure the document using ALL {len(prompts)} of these frameworks combined:\n\n"
    else:
        intro = "Transform and restructure the document using the following framework:\n\n"
    return (
        "\n\n---\n**Document Transformation Requested:**\n"
        + intro
        + "\n\n".join(prompts)
        + "\n\nPlease restructure the entire document accordingly. "
        "Keep all original information but reorganize it."
    )
