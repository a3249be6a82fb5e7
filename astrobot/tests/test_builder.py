"""Test the staged build generation pipeline end to end (catalog and LLM stubbed)."""

import json
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent))

from conftest import CATALOG_ITEMS, StubLLM, make_catalog_session  # noqa: E402

from astrobot.budget import BudgetAllocator  # noqa: E402
from astrobot.builder import BuildAssembler  # noqa: E402
from astrobot.builds import BuildRepository  # noqa: E402
from astrobot.catalog import CatalogFetcher  # noqa: E402
from astrobot.categories import ComponentCategory  # noqa: E402
from astrobot.errors import InvalidInputError, PersistenceError, StorageError  # noqa: E402
from astrobot.models import UserInput  # noqa: E402
from astrobot.selection import SelectionPrompter  # noqa: E402

GAMING_3000 = UserInput(budget=3000, purpose="Gaming", prefs="intel")


@pytest.fixture
def repository(store):
    return BuildRepository(store)


def make_assembler(fetcher, llm, repository):
    return BuildAssembler(fetcher, BudgetAllocator(), SelectionPrompter(llm), repository)


class TestGenerateBuild:
    """Tests for a full build request."""

    def test_gaming_build(self, fetcher, repository, gaming_answers):
        llm = StubLLM(gaming_answers)
        assembler = make_assembler(fetcher, llm, repository)

        build = assembler.generate_build(GAMING_3000, owner_user_id="user-1", display_name="Gamer")

        liens = {c: (r.id if r else None) for c, r in build.components.items()}
        assert liens == {
            ComponentCategory.CPU: "intel-core-i5-14600k",
            ComponentCategory.MOTHERBOARD: "msi-pro-b760-p-wifi-ddr5",
            ComponentCategory.GPU: "msi-rtx-4070-ventus-2x",
            ComponentCategory.RAM: "corsair-vengeance-32go-ddr5-6000",
            ComponentCategory.STORAGE: "msi-spatium-m450-500go-pcie-4-0-nvme-m-2",
            ComponentCategory.PSU: "msi-mag-a850gl-pcie5",
            ComponentCategory.CASE: "lian-li-lancool-216",
            ComponentCategory.COOLING: "arctic-liquid-freezer-iii-360",
        }
        assert build.total_price == 2310
        assert build.owner_user_id == "user-1"
        assert build.display_name == "Gamer"

    def test_one_prompt_per_stage(self, fetcher, repository, gaming_answers):
        llm = StubLLM(gaming_answers)
        make_assembler(fetcher, llm, repository).generate_build(GAMING_3000)

        assert len(llm.prompts) == 7
        first = llm.prompts[0]
        assert StubLLM.asks_for(first, "PROCESSEUR")
        assert StubLLM.asks_for(first, "CARTE MÈRE")
        assert StubLLM.asks_for(llm.prompts[1], "CARTE GRAPHIQUE")
        assert not StubLLM.asks_for(llm.prompts[1], "PROCESSEUR")

    def test_cpu_candidates_are_filtered_by_budget(self, fetcher, repository, gaming_answers):
        llm = StubLLM(gaming_answers)
        make_assembler(fetcher, llm, repository).generate_build(GAMING_3000)

        first = llm.prompts[0]
        assert '{"min": 455.1, "max": 962.7}' in first
        assert "intel-core-i7-14700k" in first
        assert "intel-celeron-g6900-tray" not in first
        assert "intel-core-i9-14900ks" not in first

    def test_later_prompts_see_earlier_picks(self, fetcher, repository, gaming_answers):
        llm = StubLLM(gaming_answers)
        make_assembler(fetcher, llm, repository).generate_build(GAMING_3000)

        gpu_prompt = llm.prompts[1]
        selected = gpu_prompt.split("START SELECTED COMPONENTS BLOCK\n", 1)[1].split("\nEND OF")[0]
        assert json.loads(selected)["PROCESSEUR"]["lien"] == "intel-core-i5-14600k"
        assert "arctic-liquid-freezer-iii-360" in llm.prompts[-1]
        assert "lian-li-lancool-216" in llm.prompts[-1]

    def test_build_is_persisted(self, fetcher, repository, gaming_answers):
        build = make_assembler(fetcher, StubLLM(gaming_answers), repository).generate_build(GAMING_3000)

        stored = repository.get(build.build_id)

        assert stored.components == build.components
        prices = [r.price for r in stored.components.values() if r is not None]
        assert stored.total_price == sum(prices)

    def test_empty_category_yields_partial_build(self, cache, storage_record, repository, gaming_answers):
        cache.put(storage_record)
        items = {tag: items for tag, items in CATALOG_ITEMS.items() if tag != "CARTE GRAPHIQUE"}
        fetcher = CatalogFetcher(
            cache,
            api_url="https://catalog.test",
            session=make_catalog_session(items),
            storage_liens=[storage_record.lien],
        )
        llm = StubLLM(gaming_answers)

        build = make_assembler(fetcher, llm, repository).generate_build(GAMING_3000)

        assert build.components[ComponentCategory.GPU] is None
        assert build.components[ComponentCategory.CPU] is not None
        assert build.total_price == 2310 - 700
        assert len(llm.prompts) == 6

    def test_unparsable_answer_leaves_slot_empty(self, fetcher, repository, gaming_answers):
        def respond(prompt):
            if StubLLM.asks_for(prompt, "CARTE GRAPHIQUE"):
                return "Sorry, I cannot help with that."
            return StubLLM(gaming_answers).invoke(prompt)

        build = make_assembler(fetcher, StubLLM(responder=respond), repository).generate_build(GAMING_3000)

        assert build.components[ComponentCategory.GPU] is None
        assert build.components[ComponentCategory.RAM] is not None

    def test_everything_unavailable(self, cache, repository):
        fetcher = CatalogFetcher(
            cache, api_url="https://catalog.test", session=make_catalog_session({}), storage_liens=[]
        )
        llm = MagicMock()

        build = make_assembler(fetcher, llm, repository).generate_build(GAMING_3000)

        assert all(record is None for record in build.components.values())
        assert build.total_price == 0
        llm.invoke.assert_not_called()

    @pytest.mark.parametrize("budget", [0, -5])
    def test_invalid_budget_touches_nothing(self, budget):
        fetcher, prompter, repository = MagicMock(), MagicMock(), MagicMock()
        assembler = BuildAssembler(fetcher, BudgetAllocator(), prompter, repository)

        with pytest.raises(InvalidInputError):
            assembler.generate_build(UserInput(budget=budget, purpose="Gaming"))

        fetcher.fetch_category.assert_not_called()
        fetcher.fetch_many.assert_not_called()
        prompter.select_group.assert_not_called()
        repository.save.assert_not_called()

    def test_save_failure_raises_persistence_error(self, fetcher, gaming_answers, isolated_log_dir):
        repository = MagicMock()
        repository.save.side_effect = StorageError("database is locked")
        assembler = make_assembler(fetcher, StubLLM(gaming_answers), repository)

        with pytest.raises(PersistenceError):
            assembler.generate_build(GAMING_3000)

        log_text = next(isolated_log_dir.glob("*.jsonl")).read_text()
        assert '"event_type": "performance"' in log_text

    def test_timings_are_logged(self, fetcher, repository, gaming_answers, isolated_log_dir):
        make_assembler(fetcher, StubLLM(gaming_answers), repository).generate_build(GAMING_3000)

        entries = [
            json.loads(line)
            for line in next(isolated_log_dir.glob("*.jsonl")).read_text().splitlines()
        ]
        performance = [e for e in entries if e["event_type"] == "performance"][-1]
        timings = performance["timings"]
        assert "llm_select_cpu_motherboard" in timings
        assert "catalog_prefetch" in timings
        assert "store_save_build" in timings
        assert timings["__summary__"]["llm_seconds"] >= 0
