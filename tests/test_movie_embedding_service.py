# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-11
# Description: test_movie_embedding_service - batch pipeline end to end (in memory)
# -----------------------------------------------------------------------------
import asyncio
import errno
import json
import logging

import pytest

from embedding.EmbeddingRecord import METADATA_FIELD
from enrichment.WikipediaEnricher import EnrichmentResult, WikipediaCache, WikipediaEnricher, WikipediaSection
from fakes import FakeProvider, FakeWikipediaClient
from progress.ProgressStore import ProgressStore
from services.MovieEmbeddingService import (
    DESCRIPTION_EMBEDDING,
    SECTION_EMBEDDING,
    SECTION_TITLE,
    SUMMARY_EMBEDDING,
    TITLE_EMBEDDING,
    MovieEmbeddingService,
    PipelineState,
    prepare_record,
    representative_section,
)
from usage.UsageAccountant import UsageAccountant
from utility.errors import ProviderCallError

TITLE = "Title (Data retrieved 2019-06-21)"

MOVIES = [
    {"ID": "1", TITLE: "Seven Samurai", "Description": "Farmers hire samurai.", "Year": "1954", "Director": "Akira Kurosawa"},
    {"ID": "2", TITLE: "8½", "Description": "A director loses his way.", "Year": "1963", "Director": "Federico Fellini"},
    {"ID": "3", TITLE: "Ikiru", "Description": "A bureaucrat seeks meaning.", "Year": "1952", "Director": "Akira Kurosawa"},
]


class RecordingProgressStore(ProgressStore):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.saved = []

    def save(self, state):
        self.saved.append((len(state.results), state.resume_offset))
        super().save(state)


class DiskFullProgressStore(RecordingProgressStore):
    """Second save hits a full disk; later saves succeed again."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.failed = False

    def save(self, state):
        if len(self.saved) == 1 and not self.failed:
            self.failed = True
            raise OSError(errno.ENOSPC, "No space left on device")
        super().save(state)


class ExplodingProvider(FakeProvider):
    async def embed(self, texts):
        raise RuntimeError("socket closed")


def _service(
    tmp_path,
    provider,
    *,
    output_format="json",
    batch_size=2,
    enricher=None,
    store_cls=RecordingProgressStore,
    logger=None,
):
    suffix = "ndjson" if output_format == "ndjson" else "json"
    store = store_cls(tmp_path / f"embeddings.{suffix}", output_format=output_format)
    accountant = UsageAccountant(tmp_path / "usage_log.json")
    service = MovieEmbeddingService(
        provider=provider,
        progress_store=store,
        usage_accountant=accountant,
        batch_size=batch_size,
        enricher=enricher,
        logger=logger,
    )
    return service, store


def _usage(tmp_path):
    return json.loads((tmp_path / "usage_log.json").read_text(encoding="utf-8"))


def _saved_document(tmp_path):
    return json.loads((tmp_path / "embeddings.json").read_text(encoding="utf-8"))


# -----------------------------------------------------------------------------
# batch pipeline
# -----------------------------------------------------------------------------
def test_batches_are_embedded_in_order_and_checkpointed(tmp_path):
    provider = FakeProvider()
    service, store = _service(tmp_path, provider)

    state = asyncio.run(service.run(MOVIES))

    assert [len(call) for call in provider.calls] == [4, 2]
    assert provider.calls[0] == ["Seven Samurai", "Farmers hire samurai.", "8½", "A director loses his way."]
    assert store.saved == [(2, 2), (3, 3)]

    assert [r[TITLE_EMBEDDING] for r in state.results] == [[0.0, 0.0], [2.0, 2.0], [4.0, 4.0]]
    assert [r[DESCRIPTION_EMBEDDING] for r in state.results] == [[1.0, 1.0], [3.0, 3.0], [5.0, 5.0]]
    assert state.results[0][METADATA_FIELD]["provider"] == "fake"
    assert state.results[0][METADATA_FIELD]["model"] == "fake-model"
    assert state.results[0][METADATA_FIELD]["dimensions"] == 2
    assert state.results[2]["Director"] == "Akira Kurosawa"
    assert service.state is PipelineState.DONE

    doc = _saved_document(tmp_path)
    assert doc["lastProcessedIndex"] == 3
    assert [r["ID"] for r in doc["embeddings"]] == ["1", "2", "3"]

    usage = _usage(tmp_path)
    assert usage["totalBatches"] == 2
    assert usage["totalTexts"] == 6
    assert usage["errors"] == 0


def test_source_records_are_not_mutated(tmp_path):
    movies = [dict(m) for m in MOVIES]
    service, _ = _service(tmp_path, FakeProvider())

    asyncio.run(service.run(movies))

    assert movies == MOVIES


def test_ndjson_output(tmp_path):
    service, _ = _service(tmp_path, FakeProvider(), output_format="ndjson")

    asyncio.run(service.run(MOVIES))

    lines = (tmp_path / "embeddings.ndjson").read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["ID"] for line in lines] == ["1", "2", "3"]


def test_failed_batch_halts_and_next_run_resumes_there(tmp_path):
    failing = FakeProvider(fail_calls={2})
    service, _ = _service(tmp_path, failing)

    with pytest.raises(ProviderCallError):
        asyncio.run(service.run(MOVIES))

    assert service.state is PipelineState.HALTED
    doc = _saved_document(tmp_path)
    assert [r["ID"] for r in doc["embeddings"]] == ["1", "2"]
    assert doc["lastProcessedIndex"] == 2
    usage = _usage(tmp_path)
    assert usage["errors"] == 1
    assert usage["totalBatches"] == 1

    # rerun with a healthy provider: only record 3 is embedded
    healthy = FakeProvider()
    rerun, store = _service(tmp_path, healthy)
    state = asyncio.run(rerun.run(MOVIES))

    assert healthy.calls == [["Ikiru", "A bureaucrat seeks meaning."]]
    assert store.saved == [(3, 3)]
    assert [r["ID"] for r in state.results] == ["1", "2", "3"]
    assert _saved_document(tmp_path)["lastProcessedIndex"] == 3


def test_rerun_after_completion_embeds_nothing(tmp_path):
    first, _ = _service(tmp_path, FakeProvider())
    asyncio.run(first.run(MOVIES))

    provider = FakeProvider()
    second, store = _service(tmp_path, provider)
    state = asyncio.run(second.run(MOVIES))

    assert provider.calls == []
    assert store.saved == []
    assert len(state.results) == 3


def test_new_records_are_picked_up_incrementally(tmp_path):
    first, _ = _service(tmp_path, FakeProvider())
    asyncio.run(first.run(MOVIES[:2]))

    provider = FakeProvider()
    second, _ = _service(tmp_path, provider)
    state = asyncio.run(second.run(MOVIES))

    assert provider.calls == [["Ikiru", "A bureaucrat seeks meaning."]]
    assert [r["ID"] for r in state.results] == ["1", "2", "3"]


def test_dimension_mismatch_fails_batch(tmp_path):
    service, _ = _service(tmp_path, FakeProvider(dimensions=2, wrong_dimensions=3))

    with pytest.raises(ProviderCallError, match="dimensions"):
        asyncio.run(service.run(MOVIES))

    assert _saved_document(tmp_path)["embeddings"] == []


def test_vector_count_mismatch_fails_batch(tmp_path):
    service, _ = _service(tmp_path, FakeProvider(drop_last=True))

    with pytest.raises(ProviderCallError, match="3 embeddings for 4 texts"):
        asyncio.run(service.run(MOVIES))


def test_unexpected_provider_exception_is_wrapped(tmp_path):
    service, _ = _service(tmp_path, ExplodingProvider())

    with pytest.raises(ProviderCallError, match="socket closed"):
        asyncio.run(service.run(MOVIES))

    assert _usage(tmp_path)["errors"] == 1


def test_checkpoint_before_load_writes_nothing(tmp_path):
    service, store = _service(tmp_path, FakeProvider())

    service.checkpoint()

    assert store.saved == []
    assert not (tmp_path / "usage_log.json").exists()


def test_checkpoint_flushes_current_state(tmp_path):
    service, store = _service(tmp_path, FakeProvider())
    service.load_progress()

    service.checkpoint()

    assert store.saved == [(0, 0)]
    assert _usage(tmp_path)["totalBatches"] == 0


def test_failed_save_halts_and_flushes_usage(tmp_path):
    service, store = _service(tmp_path, FakeProvider(), store_cls=DiskFullProgressStore)

    with pytest.raises(OSError, match="No space left"):
        asyncio.run(service.run(MOVIES))

    assert service.state is PipelineState.HALTED
    # the unsaved batch never reaches memory, so the checkpoint rewrites batch 1 only
    assert len(service.progress.results) == 2
    assert service.progress.resume_offset == 2
    assert store.saved == [(2, 2), (2, 2)]
    doc = _saved_document(tmp_path)
    assert [r["ID"] for r in doc["embeddings"]] == ["1", "2"]
    assert doc["lastProcessedIndex"] == 2
    usage = _usage(tmp_path)
    assert usage["errors"] == 1
    assert usage["totalBatches"] == 1


def test_loaded_records_with_other_dimensions_are_reported(tmp_path, caplog):
    first, _ = _service(tmp_path, FakeProvider(dimensions=3))
    asyncio.run(first.run(MOVIES[:2]))

    provider = FakeProvider(dimensions=2)
    service, _ = _service(tmp_path, provider, logger=logging.getLogger("tests.dimensions"))
    with caplog.at_level(logging.WARNING, logger="tests.dimensions"):
        assert service.check_loaded_dimensions() == 2

    assert any("mix vector lengths" in r.getMessage() for r in caplog.records)


def test_loaded_records_with_matching_dimensions_are_quiet(tmp_path, caplog):
    first, _ = _service(tmp_path, FakeProvider())
    asyncio.run(first.run(MOVIES))

    service, _ = _service(tmp_path, FakeProvider(), logger=logging.getLogger("tests.dimensions"))
    with caplog.at_level(logging.WARNING, logger="tests.dimensions"):
        assert service.check_loaded_dimensions() == 0

    assert not [r for r in caplog.records if r.name == "tests.dimensions"]


# -----------------------------------------------------------------------------
# text preparation and enrichment
# -----------------------------------------------------------------------------
def _section(title, words=30):
    body = " ".join(["word"] * words)
    return WikipediaSection(title=title, content=body, word_count=words)


def test_representative_section_prefers_plot_or_synopsis():
    assert representative_section([_section("Background"), _section("Synopsis")]).title == "Synopsis"
    assert representative_section([_section("Production"), _section("Release")]).title == "Production"
    assert representative_section([]) is None


def test_prepare_record_truncates_enrichment_texts():
    enrichment = EnrichmentResult(
        found=True,
        title="Seven Samurai",
        summary="s" * 1500,
        sections=[WikipediaSection(title="Plot", content="p" * 2000, word_count=1)],
    )

    prepared = prepare_record(MOVIES[0], title_field=TITLE, description_field="Description", enrichment=enrichment)

    assert prepared.fields == [TITLE_EMBEDDING, DESCRIPTION_EMBEDDING, SUMMARY_EMBEDDING, SECTION_EMBEDDING]
    assert prepared.expected_embeddings == 4
    assert len(prepared.texts[2]) == 1000
    assert len(prepared.texts[3]) == 1000
    assert prepared.section_title == "Plot"


def test_prepare_record_without_match_has_two_texts():
    prepared = prepare_record(
        MOVIES[1],
        title_field=TITLE,
        description_field="Description",
        enrichment=EnrichmentResult(found=False, reason="No matching article found"),
    )

    assert prepared.texts == ["8½", "A director loses his way."]
    assert prepared.section_title is None


def test_enriched_batch_zips_variable_text_counts(tmp_path):
    summary = "Seven Samurai is a 1954 Japanese epic samurai film directed by Akira Kurosawa."
    plot = " ".join(["Bandits threaten the village and the farmers hire seven samurai."] * 3)
    client = FakeWikipediaClient(
        search_results={"Seven Samurai 1954 film": ["Seven Samurai"]},
        pages={"Seven Samurai": {"extract": summary, "url": "https://en.wikipedia.org/wiki/Seven_Samurai", "content": "== Plot ==\n" + plot}},
    )
    enricher = WikipediaEnricher(
        cache=WikipediaCache(tmp_path / "wikipedia_cache.json"),
        client=client,
        title_field=TITLE,
        delay_seconds=0,
    )
    provider = FakeProvider()
    service, _ = _service(tmp_path, provider, enricher=enricher)

    state = asyncio.run(service.run(MOVIES[:2]))

    assert provider.calls == [
        ["Seven Samurai", "Farmers hire samurai.", summary, plot, "8½", "A director loses his way."]
    ]
    samurai, fellini = state.results
    assert samurai[TITLE_EMBEDDING] == [0.0, 0.0]
    assert samurai[SUMMARY_EMBEDDING] == [2.0, 2.0]
    assert samurai[SECTION_EMBEDDING] == [3.0, 3.0]
    assert samurai[SECTION_TITLE] == "Plot"
    assert samurai["wikipedia"]["found"] is True
    assert samurai["wikipedia"]["title"] == "Seven Samurai"

    assert fellini[TITLE_EMBEDDING] == [4.0, 4.0]
    assert fellini[DESCRIPTION_EMBEDDING] == [5.0, 5.0]
    assert SUMMARY_EMBEDDING not in fellini
    assert fellini["wikipedia"] == {"found": False, "reason": "No matching article found"}
