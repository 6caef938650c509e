import pytest

from covplatform.contracts.extraction import (
    ExtractionError, ExtractionProgress, ExtractionRun, ExtractionTask, TaskOutcome,
)
from covplatform.services.aggregation import ResultAggregator, discovered_keys
from factories import make_collection, make_event


def _task(eid="se-1", cid="sst"):
    return ExtractionTask(event=make_event(eid), collection=make_collection(cid))


def test_outcome_requires_exactly_one_side():
    t = _task()
    with pytest.raises(ValueError):
        TaskOutcome(task=t)
    with pytest.raises(ValueError):
        TaskOutcome(task=t, stats={}, error=ExtractionError.for_task(t, "x"))


def test_aggregator_nests_successes_and_lists_errors():
    agg = ResultAggregator()
    t1, t2, t3 = _task("a", "sst"), _task("a", "chl"), _task("b", "sst")
    agg.add(TaskOutcome(task=t1, stats={"band_1": {"mean": 1.0}}))
    agg.add(TaskOutcome(task=t2, stats={"band_1": {"mean": 2.0}}))
    agg.add(TaskOutcome(task=t3, error=ExtractionError.for_task(t3, "boom")))

    results, errors = agg.snapshot()
    assert results == {"a": {"sst": {"band_1": {"mean": 1.0}}, "chl": {"band_1": {"mean": 2.0}}}}
    assert len(errors) == 1
    err = errors[0]
    assert (err.sample_event_id, err.collection_id, err.collection_name) == ("b", "sst", "Sea Surface Temp")
    assert err.site_name == "Site A"

    run = ExtractionRun(results=results, errors=errors, total_tasks=3)
    assert (run.succeeded, run.failed, run.completed) == (2, 1, 3)


def test_discovered_keys_union_sorted():
    results = {
        "a": {"reefs": {"depth": {}, "cover": {}}},
        "b": {"reefs": {"algae": {}}, "sst": {"band_1": {}}},
    }
    assert discovered_keys(results) == {"reefs": ["algae", "cover", "depth"], "sst": ["band_1"]}


def test_progress_counts_whole_events():
    p = ExtractionProgress(completed=7, total=12, n_collections=3)
    assert p.events_completed == 2
    assert p.total_events == 4
    assert ExtractionProgress(completed=0, total=0, n_collections=0).events_completed == 0
