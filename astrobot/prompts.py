"""Prompt generation for component selection.

One prompt is built per pipeline stage. A stage is either a single category
or a group chosen jointly (processor and motherboard). The prompt carries
the user's request, each category's price window, every component chosen so
far, and the candidates reduced to lien and price.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from .categories import ComponentCategory
from .models import ComponentRecord, PriceRange, SelectionContext

__all__ = [
    "SelectionEntry",
    "make_selection_prompt",
    "format_candidates_for_prompt",
    "format_answer_shape",
]

PREAMBLE = (
    "You are the AI assistant, a cutting-edge virtual companion specialized in "
    "creating custom computer builds based on user input. You are highly proficient "
    "in understanding user requirements and constraints, adept at balancing "
    "performance, budget, and preferences to generate the most suitable computer builds."
)


@dataclass
class SelectionEntry:
    """One category to be chosen in a prompt."""

    category: ComponentCategory
    candidates: List[ComponentRecord]
    price_range: PriceRange


def format_candidates_for_prompt(candidates: Sequence[ComponentRecord]) -> List[Dict[str, Any]]:
    """Reduce candidates to the fields the model needs (lien, price)."""
    return [record.to_prompt_dict() for record in candidates]


def format_answer_shape(categories: Sequence[ComponentCategory]) -> str:
    """The exact JSON object the model must answer with."""
    fields = ", ".join(
        f'"{category.catalog_label}": {{"lien": string, "index": number}}' for category in categories
    )
    return "{ " + fields + " }"


def _describe_ranges(entries: Sequence[SelectionEntry]) -> str:
    lines = []
    for entry in entries:
        lines.append(
            f"- {entry.category.catalog_label} ({entry.category.display_name}, {entry.category.description}): "
            f"price must be in the range {json.dumps(entry.price_range.to_dict())}"
        )
    return "\n".join(lines)


def make_selection_prompt(entries: Sequence[SelectionEntry], context: SelectionContext) -> str:
    """Build the selection prompt for one pipeline stage.

    Args:
        entries: Categories to choose in this stage, each with its candidates
            and price range. Candidates are listed per catalog label and
            indexed from 0 in the order given.
        context: Accumulated selections and the user's request.

    Returns:
        Prompt string ready for the LLM.
    """
    labels = ", ".join(entry.category.catalog_label for entry in entries)
    candidates_block = {
        entry.category.catalog_label: format_candidates_for_prompt(entry.candidates)
        for entry in entries
    }
    selected_block = context.snapshot()

    if len(entries) > 1:
        task = (
            f"Your job is to choose the best mutually compatible components ({labels}) "
            "available in the context that meet the user budget, purpose and preferences."
        )
    else:
        task = (
            f"Your job is to choose the best {labels} available in the context that meets "
            "the user budget, purpose and preferences and is compatible with the selected components."
        )

    storage_hint = ""
    if any(entry.category is ComponentCategory.STORAGE for entry in entries):
        storage_hint = (
            "When selecting the storage component prefer the 'MSI SPATIUM 500GB' "
            "if the user did not state any storage preference.\n"
        )

    return f"""{PREAMBLE}

START USERINPUT BLOCK
{json.dumps(context.user_input.to_dict(), ensure_ascii=False)}
END OF USERINPUT BLOCK

{task}
The user budget is the budget for a full build with all components (not just this stage).
{_describe_ranges(entries)}

START SELECTED COMPONENTS BLOCK
{json.dumps(selected_block, ensure_ascii=False)}
END OF SELECTED COMPONENTS BLOCK

{storage_hint}Return the attribute 'lien' exactly as it is in the context (respect uppercase, lowercase, spaces, dashes and punctuation).
Your response must be exactly in this format (no more no less):

{format_answer_shape([entry.category for entry in entries])}

where index is the 0-based position of the selected component in its list in the context.

START CONTEXT BLOCK
{json.dumps(candidates_block, ensure_ascii=False)}
END OF CONTEXT BLOCK
"""
