"""Set Placement Service — tests for fetch, plan and ordered commit.

Tests cover:
    - end / start / replace commits issue writes in expand -> clear -> shift -> insert order
    - Planning failures (confirmation, capacity) issue no writes
    - Chosen expansion is written first, then the plan runs against it
    - A failing write raises PersistenceFailureError naming step and completed steps
    - page_count re-read before planning; an unreadable or invalid count writes nothing
    - Item lists cached; provider failures become ItemFetchError
    - Sink failures are logged, never raised
    - History recorded only after a successful commit
"""

import logging
from datetime import datetime, timezone

import pytest

from binder_planner.config import Settings
from binder_planner.core.domain_types import ActionKind, ExpansionKind
from binder_planner.core.errors import (
    CapacityExceededError,
    ConfirmationRequiredError,
    ItemFetchError,
    PersistenceFailureError,
)
from binder_planner.core.history import HistoryNavigator
from binder_planner.schemas.placement import SetPlacementConfig, VariantOptions
from binder_planner.services.set_placement_service import SetPlacementService

NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)
SV1_IDS = ["sv1-1", "sv1-2", "sv1-3", "sv1-4"]


def _config(mode="replace", variants=None, **placement):
    return SetPlacementConfig.model_validate({
        "variants": variants or {},
        "placement": {"binder_placement": mode, **placement},
    })


def _document(positions=(), **settings):
    return {
        "id": "b1",
        "cards": {str(p): {"cardId": f"old{p}"} for p in positions},
        "settings": settings,
    }


@pytest.fixture
def navigator():
    return HistoryNavigator()


@pytest.fixture
def service(repository, provider, cache, sink, navigator, settings):
    return SetPlacementService(
        repository, provider, cache, sink=sink, history=navigator, settings=settings,
    )


# ─── Commits ─────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_end_placement_inserts_after_existing(service, repository, sink, navigator):
    repository.page_count = 3
    binder = service.snapshot(_document(range(5)))

    result = await service.apply(binder, "sv1", _config("end"), now=NOW)

    assert repository.calls == [("insert_at", "b1", SV1_IDS, False, 9)]
    assert result.completed_steps == ["insert"]
    assert result.added_count == 4
    assert sorted(result.items) == [0, 1, 2, 3, 4, 9, 10, 11, 12]
    assert [e.item_id for e in sink.stored["sv1"]] == SV1_IDS
    assert len(navigator.entries) == 1
    assert navigator.entries[0].action == ActionKind.ADD
    assert navigator.entries[0].position == 9


@pytest.mark.asyncio
async def test_start_placement_shifts_then_inserts(service, repository, navigator):
    repository.page_count = 2
    binder = service.snapshot(_document([0, 1]))

    result = await service.apply(binder, "sv1", _config("start", buffer_pages=1), now=NOW)

    assert repository.call_names == ["batch_move", "insert_at"]
    assert repository.calls[0][2] == [
        {"from_position": 1, "to_position": 14},
        {"from_position": 0, "to_position": 13},
    ]
    assert repository.calls[1] == ("insert_at", "b1", SV1_IDS, False, 0)
    assert result.completed_steps == ["shift", "insert"]
    assert result.items[13].item_id == "old0"
    assert result.items[14].item_id == "old1"

    bulk, add = navigator.entries
    assert bulk.action == ActionKind.BULK_MOVE
    assert bulk.target_position == 13
    assert bulk.target_page == 1
    assert bulk.item_count == 2
    assert add.position == 0
    assert add.item_count == 4


@pytest.mark.asyncio
async def test_confirmed_replace_clears_then_inserts(service, repository):
    binder = service.snapshot(_document(range(3)))

    result = await service.apply(binder, "sv1", _config("replace", clear_confirmed=True))

    assert repository.calls == [
        ("clear_items", "b1", "complete_set_replacement_sv1"),
        ("insert_at", "b1", SV1_IDS, True, 0),
    ]
    assert result.completed_steps == ["clear", "insert"]
    assert sorted(result.items) == [0, 1, 2, 3]


@pytest.mark.asyncio
async def test_replace_on_empty_binder_skips_clear(service, repository):
    result = await service.apply(service.snapshot(_document()), "sv1", _config("replace"))
    assert repository.call_names == ["insert_at"]
    assert result.completed_steps == ["insert"]


@pytest.mark.asyncio
async def test_variants_flow_into_insert(service, repository):
    repository.page_count = 2
    config = _config("end", variants={"include_variants": True, "variant_order": "last"})

    result = await service.apply(service.snapshot(_document()), "sv1", config)

    inserted = repository.calls[0][2]
    assert inserted == SV1_IDS + [f"{i}-rh" for i in SV1_IDS]
    assert result.plan.variant_count == 4


# ─── Rejected before any write ───────────────────────────────────

@pytest.mark.asyncio
async def test_unconfirmed_replace_writes_nothing(service, repository, navigator, sink):
    binder = service.snapshot(_document(range(3)))
    with pytest.raises(ConfirmationRequiredError):
        await service.apply(binder, "sv1", _config("replace"))
    assert repository.calls == []
    assert navigator.entries == []
    assert sink.stored == {}


@pytest.mark.asyncio
async def test_overflow_writes_nothing(service, repository):
    binder = service.snapshot(_document(range(5)))
    with pytest.raises(CapacityExceededError) as exc:
        await service.apply(binder, "sv1", _config("end"))
    assert exc.value.shortfall == 4
    assert exc.value.context.binder_id == "b1"
    assert repository.calls == []


# ─── Expansion ───────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_page_addition_written_before_insert(service, repository):
    binder = service.snapshot(_document(range(5)))
    with pytest.raises(CapacityExceededError) as exc:
        await service.apply(binder, "sv1", _config("end"))
    option = next(o for o in exc.value.options if o.kind == ExpansionKind.ADD_PAGES)

    result = await service.apply(binder, "sv1", _config("end"), expansion=option)

    assert repository.calls == [
        ("add_pages", "b1", 1),
        ("insert_at", "b1", SV1_IDS, False, 9),
    ]
    assert result.completed_steps == ["expand", "insert"]
    assert result.expansion == option


@pytest.mark.asyncio
async def test_grid_resize_written_before_insert(service, repository, provider):
    provider.sets["big"] = [{"id": f"x{i}"} for i in range(12)]
    binder = service.snapshot(_document())
    preview = await service.preview(binder, "big", _config("replace"))
    assert not preview.fits
    resize = next(o for o in preview.options if o.value == "4x3")

    result = await service.apply(binder, "big", _config("replace"), expansion=resize)

    assert repository.call_names == ["update_settings", "insert_at"]
    assert repository.calls[0] == ("update_settings", "b1", "4x3")
    assert result.plan.slots_per_page == 12


# ─── Persistence failures ────────────────────────────────────────

@pytest.mark.asyncio
async def test_failed_shift_stops_commit(service, repository, navigator, sink):
    repository.page_count = 2
    repository.fail_on = "batch_move"
    binder = service.snapshot(_document([0, 1]))

    with pytest.raises(PersistenceFailureError) as exc:
        await service.apply(binder, "sv1", _config("start", buffer_pages=1))

    assert exc.value.step == "shift"
    assert exc.value.completed_steps == []
    assert repository.calls == []
    assert navigator.entries == []
    assert sink.stored == {}


@pytest.mark.asyncio
async def test_failed_insert_reports_completed_steps(service, repository):
    repository.fail_on = "insert_at"
    binder = service.snapshot(_document(range(3)))

    with pytest.raises(PersistenceFailureError) as exc:
        await service.apply(binder, "sv1", _config("replace", clear_confirmed=True))

    err = exc.value
    assert err.step == "insert"
    assert err.completed_steps == ["clear"]
    assert err.context.binder_id == "b1"
    assert err.context.set_id == "sv1"
    assert "insert_at unavailable" in err.message


@pytest.mark.asyncio
async def test_failed_step_is_logged_with_completed_steps(service, repository, caplog):
    repository.fail_on = "insert_at"
    binder = service.snapshot(_document(range(3)))

    with caplog.at_level(logging.ERROR), pytest.raises(PersistenceFailureError) as exc:
        await service.apply(binder, "sv1", _config("replace", clear_confirmed=True))

    record = next(r for r in caplog.records if r.levelno == logging.ERROR)
    assert record.step == "insert"
    assert record.completed_steps == ["clear"]
    assert record.exc_info[1] is exc.value


@pytest.mark.asyncio
async def test_page_count_read_failure(service, repository):
    repository.fail_on = "get_page_count"
    with pytest.raises(PersistenceFailureError) as exc:
        await service.apply(service.snapshot(_document()), "sv1", _config())
    assert exc.value.step == "page_count"


@pytest.mark.asyncio
@pytest.mark.parametrize("reported", [0, -2])
async def test_invalid_page_count_is_persistence_failure(service, repository, reported):
    repository.page_count = reported
    with pytest.raises(PersistenceFailureError) as exc:
        await service.apply(service.snapshot(_document()), "sv1", _config())
    assert exc.value.step == "page_count"
    assert exc.value.completed_steps == []
    assert exc.value.context.binder_id == "b1"
    assert repository.calls == []


@pytest.mark.asyncio
async def test_fresh_page_count_used(service, repository):
    repository.page_count = 4
    refreshed = await service.refresh_snapshot(service.snapshot(_document(pageCount=1)))
    assert refreshed.settings.page_count == 4


@pytest.mark.asyncio
async def test_sink_failure_is_logged_not_raised(service, sink, caplog):
    sink.fail = True
    with caplog.at_level(logging.WARNING):
        result = await service.apply(service.snapshot(_document()), "sv1", _config())
    assert result.completed_steps == ["insert"]
    assert any("cache update failed" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_without_history_or_sink(repository, provider, cache, settings):
    service = SetPlacementService(repository, provider, cache, settings=settings)
    result = await service.apply(service.snapshot(_document()), "sv1", _config())
    assert result.history_entries == []


# ─── Item lists ──────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_item_lists_are_cached(service, provider, cache):
    first = await service.load_items("sv1")
    second = await service.load_items("sv1")
    assert [r.id for r in first] == [r.id for r in second] == SV1_IDS
    assert provider.fetch_count == 1
    assert cache.hits == 1


@pytest.mark.asyncio
async def test_provider_error_becomes_fetch_error(service, provider, cache):
    provider.error = TimeoutError("provider timed out")
    with pytest.raises(ItemFetchError) as exc:
        await service.load_items("sv1")
    assert exc.value.set_id == "sv1"
    assert "sv1" not in cache

    provider.error = None
    assert len(await service.load_items("sv1")) == 4


@pytest.mark.asyncio
async def test_empty_set_is_fetch_error(service):
    with pytest.raises(ItemFetchError):
        await service.load_items("unknown")


@pytest.mark.asyncio
async def test_invalid_records_are_fetch_error(service, provider):
    provider.sets["bad"] = [{"id": "ok"}, {"name": "missing id"}]
    with pytest.raises(ItemFetchError):
        await service.load_items("bad")


# ─── Preview and estimates ───────────────────────────────────────

@pytest.mark.asyncio
async def test_preview_of_full_set_with_variants(service, repository):
    config = _config("replace", variants={"include_variants": True, "variant_copies": 2})
    preview = await service.preview(service.snapshot(_document()), "sv2", config)
    assert preview.plan.output_size == 330
    assert not preview.fits
    assert preview.options[-1].kind == ExpansionKind.ADD_PAGES
    assert repository.calls == []


def test_estimate_total(service):
    assert service.estimate_total(10, VariantOptions()) == 10
    assert service.estimate_total(10, VariantOptions(include_variants=True)) == 16
    assert service.estimate_total(10, VariantOptions(include_variants=True, variant_copies=2)) == 22


def test_snapshot_uses_settings_defaults(repository, provider, cache):
    service = SetPlacementService(
        repository, provider, cache,
        settings=Settings(_env_file=None, default_grid_size="4x4", default_max_pages=12),
    )
    binder = service.snapshot({"id": "b9"})
    assert binder.slots_per_page == 16
    assert binder.settings.max_pages == 12
