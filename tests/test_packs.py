from __future__ import annotations

import json

import pytest
from conftest import EchoChatClient, trivia_payload

from trivia_engine.database import create_engine_for, create_session_factory, init_db
from trivia_engine.errors import PackFormatError
from trivia_engine.schemas.library import QuestionDocInput
from trivia_engine.services.library_service import LibraryService
from trivia_engine.services.packs import (
    build_counts,
    export_pack,
    generate_pack,
    import_pack,
    parse_pack,
    write_pack_file,
)
from trivia_engine.services.trivia_generator import TriviaGenerator
from trivia_engine.utils.rate_limiter import MinIntervalRateLimiter


def _seed_library(db, library: LibraryService) -> None:
    library.put_many(db, [
        QuestionDocInput.model_validate(trivia_payload(question="First exported question?")),
        QuestionDocInput.model_validate(trivia_payload(question="Second exported question?", difficulty="hard")),
    ])


def test_export_then_import_into_same_library_is_all_duplicates(db) -> None:
    library = LibraryService()
    _seed_library(db, library)
    pack = export_pack(library.list_questions(db))

    summary = import_pack(db, library, pack)

    assert (summary.total, summary.inserted, summary.duplicates) == (2, 0, 2)


def test_import_into_empty_library(db) -> None:
    source = LibraryService()
    _seed_library(db, source)
    pack = json.loads(export_pack(source.list_questions(db), meta={"name": "demo"}))
    assert pack["name"] == "demo"
    assert pack["counts"]["byDifficulty"] == {"easy": 1, "medium": 0, "hard": 1}

    other_engine = create_engine_for("sqlite://")
    init_db(other_engine)
    other_db = create_session_factory(other_engine)()
    try:
        target = LibraryService()
        summary = import_pack(other_db, target, json.dumps(pack["items"]))

        assert (summary.total, summary.inserted, summary.duplicates) == (2, 2, 0)
        assert {d.source for d in target.list_questions(other_db)} == {"generated"}
    finally:
        other_db.close()
        other_engine.dispose()


def test_import_recomputes_tampered_hashes(db) -> None:
    library = LibraryService()
    _seed_library(db, library)
    items = json.loads(export_pack(library.list_questions(db)))["items"]
    for item in items:
        item["stemHash"] = "tampered"
        item["id"] = item["id"] + "-copy"

    summary = import_pack(db, library, json.dumps({"items": items}))

    assert summary.duplicates == 2
    assert library.count(db) == 2


def test_imported_items_without_source_are_marked_imported(db) -> None:
    item = {**trivia_payload(), "id": "pack-1", "stemHash": "x", "createdAt": 5}
    library = LibraryService()
    import_pack(db, library, json.dumps([item]))
    assert library.list_questions(db)[0].source == "imported"


@pytest.mark.parametrize(
    "text",
    [
        "not json",
        json.dumps({"questions": []}),
        json.dumps([{"id": "x"}]),
        json.dumps([{**trivia_payload(), "id": "x", "stemHash": "h", "createdAt": 1, "correctIndex": 7}]),
        json.dumps([{**trivia_payload(), "id": "x", "stemHash": "h", "createdAt": 1, "source": "bogus"}]),
        b"\xff\xfe[not utf8]",
    ],
)
def test_invalid_packs_are_rejected(text) -> None:
    with pytest.raises(PackFormatError):
        parse_pack(text)


def test_build_counts_groups_by_category_and_difficulty() -> None:
    docs = parse_pack(json.dumps([
        {**trivia_payload(), "id": "1", "stemHash": "a", "createdAt": 1},
        {**trivia_payload(category="history"), "id": "2", "stemHash": "b", "createdAt": 1},
    ]))
    assert build_counts(docs) == {
        "byCategory": {"science": 1, "history": 1},
        "byDifficulty": {"easy": 2, "medium": 0, "hard": 0},
    }


@pytest.mark.asyncio
async def test_generate_pack_and_write_file(kv_store, tmp_path) -> None:
    generator = TriviaGenerator(
        EchoChatClient(),
        kv_store,
        model="test-model",
        rate_limiter=MinIntervalRateLimiter(0.0),
    )

    docs = await generate_pack(generator, 3, "science", "easy", "professor", seed_base="pack", delay=0)

    assert len(docs) == 3
    assert [d.seed_echo for d in docs] == ["pack-1", "pack-2", "pack-3"]
    assert len({d.stem_hash for d in docs}) == 3
    assert all(d.tone == "professor" and d.source == "generated" for d in docs)

    path = await write_pack_file(str(tmp_path / "pack.json"), docs)
    written = json.loads((tmp_path / "pack.json").read_text(encoding="utf-8"))
    assert path.endswith("pack.json")
    assert len(written["items"]) == 3
    assert written["items"][0]["seedEcho"] == "pack-1"


def test_pack_bytes_are_read_as_utf8() -> None:
    item = {**trivia_payload(question="Which café sells crème brûlée?"), "id": "u1", "stemHash": "h", "createdAt": 1}
    docs = parse_pack(json.dumps([item], ensure_ascii=False).encode("utf-8"))
    assert docs[0].question == "Which café sells crème brûlée?"


@pytest.mark.asyncio
async def test_generate_pack_waits_between_items(kv_store) -> None:
    generator = TriviaGenerator(
        EchoChatClient(),
        kv_store,
        model="test-model",
        rate_limiter=MinIntervalRateLimiter(0.0),
    )
    waits: list[float] = []

    async def _sleep(seconds: float) -> None:
        waits.append(seconds)

    await generate_pack(generator, 3, "science", "easy", "snark", seed_base="paced", delay=0.4, sleep=_sleep)

    assert waits == [0.4, 0.4]
