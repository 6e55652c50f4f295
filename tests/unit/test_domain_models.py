import itertools
import random
import pytest
from functools import reduce
from pathlib import Path
from pydantic import ValidationError
from webpbatch.domain.errors import EncodeError, EncodeStatus, FileConversionError
from webpbatch.domain.models import AggregateStats, ConversionResult, ConversionTask, PathSet


def _results():
    return [
        ConversionResult(path=Path("a.png"), input_size=50_000, output_size=12_000),
        ConversionResult(path=Path("b.png"), input_size=8_000, output_size=9_500),
        ConversionResult.failed(Path("c.txt"), 300, "c.txt is not an image"),
        ConversionResult(path=Path("d.jpg"), input_size=1_024, output_size=700),
        ConversionResult.failed(Path("e.png"), 0, "Cannot read e.png"),
    ]


def _reduce(stats):
    return reduce(AggregateStats.combine, stats, AggregateStats())


def test_identity():
    s = AggregateStats(total_input_size=3, total_output_size=2, file_count=1)
    assert s.combine(AggregateStats()) == s
    assert AggregateStats().combine(s) == s


def test_failed_result_contributes_zero_output():
    stats = AggregateStats.from_result(ConversionResult.failed(Path("x.png"), 123, "boom"))
    assert stats == AggregateStats(total_input_size=123, total_output_size=0, file_count=1, failed_count=1)


def test_reduction_is_order_independent():
    stats = [AggregateStats.from_result(r) for r in _results()]
    expected = _reduce(stats)

    for perm in itertools.permutations(stats):
        assert _reduce(perm) == expected

    assert expected.file_count == 5
    assert expected.failed_count == 2
    assert expected.total_input_size == 50_000 + 8_000 + 300 + 1_024
    assert expected.total_output_size == 12_000 + 9_500 + 700


def test_reduction_is_partition_independent():
    stats = [AggregateStats.from_result(r) for r in _results()]
    expected = _reduce(stats)
    rng = random.Random(7)

    for _ in range(20):
        shuffled = stats[:]
        rng.shuffle(shuffled)
        cut1, cut2 = sorted(rng.sample(range(len(shuffled) + 1), 2))
        groups = [shuffled[:cut1], shuffled[cut1:cut2], shuffled[cut2:]]
        assert _reduce(_reduce(g) for g in groups) == expected


def test_associativity():
    a, b, c = (AggregateStats.from_result(r) for r in _results()[:3])
    assert (a + b) + c == a + (b + c)


def test_reduction_percent():
    stats = AggregateStats(total_input_size=200, total_output_size=50, file_count=2)
    assert stats.reduction_percent == pytest.approx(75.0)
    assert AggregateStats().reduction_percent == 0.0
    grown = AggregateStats(total_input_size=100, total_output_size=150, file_count=1)
    assert grown.reduction_percent == pytest.approx(-50.0)


def test_models_are_frozen():
    stats = AggregateStats()
    with pytest.raises(ValidationError):
        stats.file_count = 3
    task = ConversionTask(input=Path("a/b.png"), output=Path("out/b.png"))
    with pytest.raises(ValidationError):
        task.output = Path("elsewhere")


def test_negative_sizes_rejected():
    with pytest.raises(ValidationError):
        ConversionResult(path=Path("a.png"), input_size=-1)


def test_path_set_defaults():
    ps = PathSet(root=Path("in"), output_root=Path("out"))
    assert ps.files == []


def test_encode_error_message_carries_status():
    err = EncodeError(EncodeStatus.OUT_OF_MEMORY)
    assert isinstance(err, FileConversionError)
    assert err.status == EncodeStatus.OUT_OF_MEMORY
    assert "OUT_OF_MEMORY" in str(err)
