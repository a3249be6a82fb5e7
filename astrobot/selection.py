"""LLM-driven component selection.

The model answers with a JSON object keyed by catalog label, each value
holding the chosen candidate's lien and its 0-based index in the prompt's
list. The index is mapped back to the ORIGINAL candidate records, so the
full record (not the reduced prompt copy) ends up in the build.

Any failure for a category, be it a transport error, unparsable text or an
index out of range, leaves that category unresolved (None). There are no
retries.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .categories import ComponentCategory
from .errors import LLMInvocationError, SelectionParseError
from .logging_utils import log_interaction
from .models import ComponentRecord, PriceRange, SelectionContext, normalize_lien
from .prompts import SelectionEntry, make_selection_prompt

__all__ = [
    "TextCompletion",
    "SelectionPrompter",
    "normalize_model_output",
    "parse_selection_response",
    "pick_candidate",
]

logger = logging.getLogger(__name__)


class TextCompletion(Protocol):
    def invoke(self, prompt: str) -> str: ...


def normalize_model_output(raw: str) -> str:
    """Best-effort repair of JSON-like model output.

    Strips surrounding whitespace and turns every single quote into a double
    quote, so ``{'PROCESSEUR': {'index': 0}}`` parses. This is lossy (an
    apostrophe inside a value breaks the JSON) and is allowed to fail; the
    caller treats a failure as an unresolved selection.
    """
    return raw.strip().replace("'", '"')


def parse_selection_response(raw: str) -> Dict[str, Any]:
    """Normalize and parse the model answer into a dict.

    Raises:
        SelectionParseError: If the text is not a JSON object.
    """
    text = normalize_model_output(raw)
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise SelectionParseError(f"Response is not valid JSON: {e}", raw=raw) from e
    if not isinstance(parsed, dict):
        raise SelectionParseError("Response is not a JSON object", raw=raw)
    return parsed


def pick_candidate(
    answer: Dict[str, Any],
    category: ComponentCategory,
    candidates: Sequence[ComponentRecord],
) -> ComponentRecord:
    """Map one category's answer back to the original candidate.

    The index (an integer, or a quoted run of digits) is authoritative.
    An index that is present but unusable leaves the category unresolved,
    even if a lien is given. When the model omits the index but gives a lien,
    the lien is matched against the candidates ignoring case and dashes.

    Raises:
        SelectionParseError: If the answer has no usable entry for the category.
    """
    label = category.catalog_label
    entry = answer.get(label)
    if not isinstance(entry, dict):
        raise SelectionParseError(f"No answer for {label}")

    index = entry.get("index")
    # Models sometimes quote the number: "index": "0"
    if isinstance(index, str) and index.strip().isdigit():
        index = int(index.strip())
    if index is not None:
        if isinstance(index, bool) or not isinstance(index, int):
            raise SelectionParseError(f"Index for {label} is not an integer: {index!r}")
        if not 0 <= index < len(candidates):
            raise SelectionParseError(
                f"Index {index} for {label} out of range (0..{len(candidates) - 1})"
            )
        return candidates[index]

    lien = entry.get("lien")
    if isinstance(lien, str) and lien.strip():
        wanted = normalize_lien(lien)
        for record in candidates:
            if normalize_lien(record.id) == wanted:
                return record
        raise SelectionParseError(f"Lien {lien!r} for {label} matches no candidate")

    raise SelectionParseError(f"Answer for {label} has neither index nor lien")


class SelectionPrompter:
    """Asks the LLM to pick one candidate per category."""

    def __init__(self, llm: TextCompletion):
        self.llm = llm

    def select_component(
        self,
        category: ComponentCategory,
        candidates: Sequence[ComponentRecord],
        context: SelectionContext,
        price_range: PriceRange,
    ) -> Optional[ComponentRecord]:
        """Select a single category; None means unresolved."""
        entry = SelectionEntry(category=category, candidates=list(candidates), price_range=price_range)
        return self.select_group([entry], context)[category]

    def select_group(
        self,
        entries: Sequence[SelectionEntry],
        context: SelectionContext,
    ) -> Dict[ComponentCategory, Optional[ComponentRecord]]:
        """Select several categories with one prompt.

        Categories without candidates are not offered to the model and
        resolve to None; if none has candidates the model is not called.

        Returns:
            Dict mapping every requested category to its pick or None.
        """
        picks: Dict[ComponentCategory, Optional[ComponentRecord]] = {
            entry.category: None for entry in entries
        }
        offered: List[SelectionEntry] = [entry for entry in entries if entry.candidates]
        for entry in entries:
            if not entry.candidates:
                logger.info(f"No candidates for {entry.category.catalog_label}; left unresolved")
        if not offered:
            return picks

        stage = "+".join(entry.category.value for entry in offered)
        prompt = make_selection_prompt(offered, context)
        log_interaction("llm_call_selection", {"stage": stage, "prompt": prompt})

        try:
            raw = self.llm.invoke(prompt)
        except Exception as e:
            error = e if isinstance(e, LLMInvocationError) else LLMInvocationError(str(e))
            log_interaction("llm_error", {"stage": stage, "error": str(error)})
            logger.warning(f"LLM call failed for {stage}: {error}")
            return picks

        log_interaction("llm_response_selection", {"stage": stage, "raw_response": raw})

        try:
            answer = parse_selection_response(raw)
        except SelectionParseError as e:
            log_interaction("llm_parse_error", {"stage": stage, "error": str(e), "raw": raw})
            logger.warning(f"Unparsable selection for {stage}: {e}")
            return picks

        for entry in offered:
            try:
                picks[entry.category] = pick_candidate(answer, entry.category, entry.candidates)
            except SelectionParseError as e:
                log_interaction(
                    "llm_parse_error",
                    {"stage": stage, "category": entry.category.value, "error": str(e), "raw": raw},
                )
                logger.warning(str(e))

        return picks
