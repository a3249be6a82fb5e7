"""AI build assembly.

Drives the selection pipeline for one build request:

1. Processor and motherboard are chosen together in a single prompt.
2. The graphics card is chosen knowing the processor and motherboard.
3. Memory, storage, power supply, case and cooling are fetched up front
   (concurrently) and then chosen one by one, each prompt seeing every
   earlier pick.
4. The resolved parts are priced, stamped and persisted.

A category that cannot be resolved is stored as an empty slot. Only invalid
input and a failed final save abort the request.
"""

import logging
from typing import Dict, List, Optional, Sequence

from .budget import BudgetAllocator
from .builds import BuildRepository
from .catalog import CatalogFetcher
from .categories import PIPELINE_STAGES, ComponentCategory
from .errors import PersistenceError, StorageError
from .logging_utils import log_interaction
from .models import BuildRecord, ComponentRecord, SelectionContext, UserInput
from .prompts import SelectionEntry
from .selection import SelectionPrompter
from .timing import get_timings, reset_timings, timer

__all__ = ["BuildAssembler"]

logger = logging.getLogger(__name__)

Candidates = Dict[ComponentCategory, List[ComponentRecord]]


class BuildAssembler:
    """Runs catalog fetch, budget allocation and LLM selection stage by stage."""

    def __init__(
        self,
        fetcher: CatalogFetcher,
        allocator: BudgetAllocator,
        prompter: SelectionPrompter,
        repository: BuildRepository,
    ):
        self.fetcher = fetcher
        self.allocator = allocator
        self.prompter = prompter
        self.repository = repository

    def generate_build(
        self,
        user_input: UserInput,
        owner_user_id: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> BuildRecord:
        """Generate, persist and return a build for ``user_input``.

        Raises:
            InvalidInputError: If the budget is not a positive number. Raised
                before any catalog, LLM or store access.
            PersistenceError: If the finished build cannot be saved.
        """
        user_input.validate()
        reset_timings()

        context = SelectionContext(user_input=user_input)
        logger.info(
            f"Generating build: budget={user_input.budget} purpose={user_input.purpose!r}"
        )

        first_stage, second_stage, *remaining_stages = PIPELINE_STAGES

        # Stages 1 and 2 fetch on demand; the rest is independent of picks
        self._run_stage(first_stage, context, self._fetch(first_stage))
        self._run_stage(second_stage, context, self._fetch(second_stage))

        remaining = [category for stage in remaining_stages for category in stage]
        with timer("catalog_prefetch"):
            prefetched = self.fetcher.fetch_many(remaining)
        for stage in remaining_stages:
            self._run_stage(stage, context, {c: prefetched.get(c, []) for c in stage})

        build = BuildRecord.create(
            context.selections, owner_user_id=owner_user_id, display_name=display_name
        )
        resolved = sum(1 for record in build.components.values() if record is not None)
        logger.info(
            f"Build {build.build_id}: {resolved}/{len(build.components)} components, "
            f"total {build.total_price:.2f}"
        )

        try:
            with timer("store_save_build"):
                self.repository.save(build)
        except StorageError as e:
            logger.error(f"Could not save build {build.build_id}: {e}")
            raise PersistenceError(build.build_id, str(e)) from e
        finally:
            log_interaction("performance", {"build_id": build.build_id, "timings": get_timings()})

        return build

    def _fetch(self, stage: Sequence[ComponentCategory]) -> Candidates:
        fetched: Candidates = {}
        for category in stage:
            with timer(f"catalog_fetch_{category.value}"):
                fetched[category] = self.fetcher.fetch_category(category)
        return fetched

    def _run_stage(
        self,
        stage: Sequence[ComponentCategory],
        context: SelectionContext,
        fetched: Candidates,
    ) -> None:
        """Allocate, prompt and record the picks of one stage."""
        budget = context.user_input.budget
        entries: List[SelectionEntry] = []
        for category in stage:
            price_range, filtered = self.allocator.allocate(
                category, budget, fetched.get(category, [])
            )
            entries.append(
                SelectionEntry(category=category, candidates=filtered, price_range=price_range)
            )

        stage_name = "_".join(category.value for category in stage)
        with timer(f"llm_select_{stage_name}"):
            picks = self.prompter.select_group(entries, context)

        for category in stage:
            record = picks.get(category)
            context.resolve(category, record)
            if record is None:
                logger.info(f"{category.catalog_label} unresolved")
            else:
                logger.info(f"{category.catalog_label}: {record.id} ({record.price:.2f})")
