import asyncio

import httpx
import pytest

from comptable.models.config import CellConfig
from comptable.models.output import AnalysisResult, CellStore, Competitor, Criterion
from comptable.pipeline.cells import CellResolver, clean_answer, clean_description


def make_result(n_competitors=2, n_criteria=3):
    competitors = [Competitor(name=f"Comp {i}", frequency=1, rank=i + 1) for i in range(n_competitors)]
    criteria = [Criterion(name=f"Crit {j}", frequency=1, rank=j + 1) for j in range(n_criteria)]
    return AnalysisResult(
        target="Target",
        competitors=competitors,
        criteria=criteria,
        table=AnalysisResult.empty_table(n_competitors, n_criteria),
    )


class TestCleanAnswer:
    def test_think_tags_and_label_removed(self):
        raw = "<think>reasoning</think>Answer: Electric propulsion system here"

        assert clean_answer(raw) == "Electric propulsion system here"

    def test_truncated_to_five_words(self):
        assert clean_answer("one two three four five six seven") == "one two three four five"

    def test_first_line_only(self):
        assert clean_answer("iOS\nBecause Apple makes it.") == "iOS"

    def test_multiline_think_block(self):
        assert clean_answer("<think>\nstep 1\nstep 2\n</think>\n\nA: $300-400") == "$300-400"

    def test_unterminated_think_block(self):
        assert clean_answer("<think>The user wants the price of") == "Unknown"

    @pytest.mark.parametrize("label", ["Answer:", "answer:", "A:", "Response:", "Answer only:"])
    def test_labels(self, label):
        assert clean_answer(f"{label} Petrol") == "Petrol"

    def test_empty_is_unknown(self):
        assert clean_answer("   ") == "Unknown"

    def test_description_cleanup(self):
        raw = "Description: Rivian is an American EV maker.\nIt was founded in 2009."

        assert clean_description(raw) == "Rivian is an American EV maker."


@pytest.mark.asyncio
async def test_resolve_cell(stub_client):
    client = stub_client(lambda model, messages: "Answer: Electric")

    answer = await CellResolver(client).resolve_cell("Tesla", "Fuel Source")

    assert (answer.competitor, answer.criterion, answer.answer, answer.error) == (
        "Tesla", "Fuel Source", "Electric", False,
    )
    call = client.calls[0]
    assert call["max_tokens"] == 15
    assert call["temperature"] == 0.1
    assert "What is the Fuel Source for Tesla?" in call["messages"][1]["content"]


@pytest.mark.asyncio
async def test_resolve_cell_failure_returns_sentinel(stub_client):
    client = stub_client(lambda model, messages: httpx.ReadTimeout("timed out"))

    answer = await CellResolver(client).resolve_cell("Tesla", "Price")

    assert answer.answer == "Error"
    assert answer.error is True


@pytest.mark.asyncio
async def test_describe_failure_returns_sentinel(stub_client):
    client = stub_client(lambda model, messages: RuntimeError("boom"))

    description = await CellResolver(client).describe_competitor("Rivian", "Tesla")

    assert description.description == "Error"
    assert description.error is True


@pytest.mark.asyncio
async def test_refresh_overwrites_cell(stub_client):
    replies = iter(["Old", "New"])
    client = stub_client(lambda model, messages: next(replies))
    resolver = CellResolver(client)
    result = make_result()
    store = CellStore()

    await resolver.refresh_cell(result, store, 1, 2)
    await resolver.refresh_cell(result, store, 1, 2)

    assert store.get_cell(1, 2).answer == "New"
    assert store.merged_table(result)[1][2] == "New"
    # the result itself is never modified
    assert result.table[1][2] is None


@pytest.mark.asyncio
async def test_resolve_all_batches_requests(stub_client):
    running = 0
    max_running = 0

    async def tracked(messages):
        nonlocal running, max_running
        running += 1
        max_running = max(max_running, running)
        await asyncio.sleep(0.01)
        running -= 1
        prompt = messages[-1]["content"]
        return "Description: A company." if "Describe" in prompt else "42"

    client = stub_client(lambda model, messages: tracked(messages))
    resolver = CellResolver(client, CellConfig(batch_size=2, batch_delay=0))
    result = make_result(n_competitors=2, n_criteria=3)
    store = CellStore()
    progress = []

    await resolver.resolve_all(result, store, progress_callback=lambda done, total: progress.append((done, total)))

    # 2 descriptions + 6 cells in batches of 2
    assert len(client.calls) == 8
    assert max_running <= 2
    assert progress == [(2, 8), (4, 8), (6, 8), (8, 8)]
    assert len(store.cells) == 6
    assert all(cell.answer == "42" for cell in store.cells.values())
    assert store.get_description(0).description == "A company."
    assert store.merged_table(result) == [["42"] * 3, ["42"] * 3]


@pytest.mark.asyncio
async def test_resolve_all_without_descriptions_isolates_errors(stub_client):
    def reply(model, messages):
        if "Crit 1" in messages[-1]["content"]:
            return ValueError("rate limited")
        return "Yes"

    resolver = CellResolver(stub_client(reply), CellConfig(batch_size=10, batch_delay=0))
    result = make_result(n_competitors=2, n_criteria=2)
    store = CellStore()

    await resolver.resolve_all(result, store, include_descriptions=False)

    assert store.descriptions == {}
    assert store.get_cell(0, 0).answer == "Yes"
    assert store.get_cell(0, 1).error is True
    assert store.get_cell(1, 1).answer == "Error"
