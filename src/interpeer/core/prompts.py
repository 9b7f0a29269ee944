"""Review templates, prompt assembly, and resource expansion.

``build_prompt_bundle`` is a pure function of the request: identical
requests must produce identical prompts, since cached responses are keyed
on the request rather than on the rendered prompt.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path

from ..models.request import ReviewRequest, ReviewStyle, ReviewType
from .errors import ResourceReadError


@dataclass(frozen=True)
class ReviewTemplate:
    id: str
    title: str
    description: str
    guidance: tuple[str, ...]


@dataclass(frozen=True)
class PromptBundle:
    system: str
    user: str


REVIEW_TEMPLATES: dict[str, ReviewTemplate] = {
    ReviewType.GENERAL.value: ReviewTemplate(
        id="general",
        title="General Review",
        description=(
            "Provide a balanced critique that covers technical accuracy, clarity, "
            "and overall quality."
        ),
        guidance=(
            "Call out any correctness issues or missing requirements.",
            "Highlight areas that work well or demonstrate strong craft.",
            "Note opportunities to improve maintainability or readability.",
        ),
    ),
    ReviewType.CODE.value: ReviewTemplate(
        id="code",
        title="Code Review",
        description=(
            "Assess code correctness, safety, and maintainability using interpeer "
            "review conventions."
        ),
        guidance=(
            "Identify bugs, edge cases, or logic errors.",
            "Evaluate test coverage, error handling, and defensive coding.",
            "Recommend refactorings, abstractions, or style improvements where appropriate.",
        ),
    ),
    ReviewType.DESIGN.value: ReviewTemplate(
        id="design",
        title="Design Review",
        description=(
            "Review design documents for clarity, feasibility, and alignment with "
            "project objectives."
        ),
        guidance=(
            "Assess whether requirements and constraints are addressed.",
            "Check for missing considerations (dependencies, risks, rollout plan).",
            "Suggest clarifications, diagrams, or follow-up questions that would de-risk the design.",
        ),
    ),
    ReviewType.ARCHITECTURE.value: ReviewTemplate(
        id="architecture",
        title="Architecture Review",
        description=(
            "Evaluate architectural choices for scalability, resilience, and alignment "
            "with best practices."
        ),
        guidance=(
            "Identify bottlenecks, single points of failure, or unclear responsibilities.",
            "Consider scalability, observability, and operational readiness.",
            "Recommend patterns, tooling, or documentation that would strengthen the architecture.",
        ),
    ),
    ReviewType.SECURITY_AUDIT.value: ReviewTemplate(
        id="security_audit",
        title="Security Audit",
        description=(
            "Inspect the artifact for vulnerabilities, insecure defaults, and missing "
            "hardening steps."
        ),
        guidance=(
            "Highlight authentication, authorization, and input validation gaps.",
            "Check secrets handling, logging of sensitive data, and dependency risk.",
            "Recommend mitigations such as sanitization, rate limiting, or policy enforcement.",
        ),
    ),
    ReviewType.BRAINSTORM_ALTERNATIVES.value: ReviewTemplate(
        id="brainstorm_alternatives",
        title="Brainstorm Alternatives",
        description=(
            "Generate alternative approaches, trade-offs, and creative options for the "
            "problem at hand."
        ),
        guidance=(
            "List at least two viable alternatives with pros and cons.",
            "Identify experiments or spikes that would de-risk the decision.",
            "Call out assumptions and suggest questions that should be answered next.",
        ),
    ),
}

REVIEWER_PERSONA = " ".join(
    [
        "You are acting as an expert reviewer for Interpeer.",
        "Deliver actionable, empathetic, and technically precise feedback.",
        "Use the user's preferred response style.",
        "Only comment on the provided content; do not assume file context beyond what is included.",
    ]
)


def get_template(review_type: object) -> ReviewTemplate:
    key = getattr(review_type, "value", review_type)
    return REVIEW_TEMPLATES.get(key, REVIEW_TEMPLATES[ReviewType.GENERAL.value])


def _focus_section(focus: list[str] | None) -> str:
    if not focus:
        return (
            "Primary focus areas: General review "
            "(use judgment to highlight the most important themes)."
        )
    lines = ["Primary focus areas:"]
    lines.extend(f"- {item}" for item in focus)
    lines.append("")
    lines.append("Address these ahead of other observations when prioritizing your response.")
    return "\n".join(lines)


def _time_budget_guidance(seconds: int | None) -> str:
    if seconds:
        return (
            f"Aim to deliver the most critical insights within approximately {seconds} seconds. "
            "Prefer concise, high-value observations over exhaustive analysis."
        )
    return "Be concise but thorough, focusing on the highest-impact observations."


def _output_format(style: object) -> str:
    if getattr(style, "value", style) == ReviewStyle.FREEFORM.value:
        return "Provide a concise narrative assessment with clear paragraphs and transitions."
    return " ".join(
        [
            "Respond using markdown sections with headings:",
            "## Strengths",
            "## Concerns",
            "## Recommendations",
            'Include short bullet points under each heading. If a category has no items, write "None noted."',
        ]
    )


def build_prompt_bundle(request: ReviewRequest) -> PromptBundle:
    """Turn a review request into a system/user prompt pair."""
    template = get_template(request.review_type)

    template_guidance = "\n".join(
        [f"Review profile: {template.title} - {template.description}"]
        + [f"- {item}" for item in template.guidance]
    )

    system = " ".join(
        part
        for part in (
            REVIEWER_PERSONA,
            template_guidance,
            _time_budget_guidance(request.time_budget_seconds),
            _output_format(request.style),
        )
        if part
    )

    user = "\n".join(
        [
            _focus_section(request.focus),
            "",
            "Content to review:",
            "```",
            request.content.strip(),
            "```",
        ]
    )
    return PromptBundle(system=system, user=user)


def build_cross_agent_prompt(bundle: PromptBundle) -> str:
    """Flatten a prompt bundle into the single prompt CLI agents take."""
    return "\n".join(
        [
            "Provide a second-opinion review following the instructions below.",
            "",
            bundle.system,
            "",
            bundle.user,
            "",
            "Return your findings now.",
        ]
    )


def _read_resource(project_root: Path, relative_path: str) -> str:
    return (project_root / relative_path).resolve().read_text(encoding="utf-8")


async def expand_resources(request: ReviewRequest, project_root: Path) -> ReviewRequest:
    """Append each resource file to the request content under a labeled block.

    Any unreadable path fails the whole request; content is never silently
    dropped.
    """
    if not request.resource_paths:
        return request

    sections: list[str] = []
    for relative_path in request.resource_paths:
        try:
            data = await asyncio.to_thread(_read_resource, Path(project_root), relative_path)
        except (OSError, UnicodeDecodeError) as e:
            raise ResourceReadError(
                f"Failed to read resource '{relative_path}': {e}",
                agent=request.target_agent,
            ) from e
        sections.append("\n".join([f"# File: {relative_path}", "```", data, "```"]))

    combined = "\n\n".join(part for part in [request.content, *sections] if part)
    return request.model_copy(update={"content": combined})
