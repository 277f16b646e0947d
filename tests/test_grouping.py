import pytest

from roikit.constants import CHANNELS, Profitability
from roikit.grouping import (
    channel_ranking,
    group_by_channel,
    group_weekly,
    profitability_bars,
    spend_distribution,
    week_label,
)


def test_week_label():
    assert week_label(3, 2) == "M3 · W2"
    assert week_label(3.0, "2") == "M3 · W2"
    assert week_label(3.5, 1) == "M3.5 · W1"


def test_weekly_buckets_sum_and_sort_numerically(make_entry):
    entries = [
        make_entry(month=10, week_of_month=1, spend=10, revenue=30),
        make_entry(month=9, week_of_month=2, spend=5, revenue=5),
        make_entry(month=9, week_of_month=2, spend=5, revenue=15, channel="EMAIL-MKT"),
        make_entry(month=9, week_of_month=1, spend=0, revenue=7),
    ]
    buckets = group_weekly(entries)
    assert [b.label for b in buckets] == ["M9 · W1", "M9 · W2", "M10 · W1"]
    assert buckets[1].spend == 10
    assert buckets[1].revenue == 20
    assert buckets[1].roi == pytest.approx(100.0)
    assert buckets[0].roi == 0


def test_weekly_empty():
    assert group_weekly([]) == []


def test_channel_rows_are_zero_filled(make_entry):
    assert [r.channel for r in group_by_channel([])] == CHANNELS
    rows = group_by_channel([make_entry(spend=100, revenue=250), make_entry(channel="NOT A CHANNEL", spend=999)])
    assert len(rows) == len(CHANNELS)
    assert sum(r.spend for r in rows) == 100


def test_channel_profitability_switch(make_entry):
    rows = {
        r.channel: r
        for r in group_by_channel([
            make_entry(channel="REDES SOCIALES (META ADS)", spend=100, revenue=400),
            make_entry(channel="WHATSAPP", spend=100, revenue=150),
        ])
    }
    meta = rows["REDES SOCIALES (META ADS)"]
    assert meta.convention is Profitability.ROAS
    assert meta.profitability == pytest.approx(4.0)
    assert rows["WHATSAPP"].convention is Profitability.ROI
    assert rows["WHATSAPP"].profitability == pytest.approx(50.0)


def test_bars_ranking_and_spend_share(make_entry):
    rows = group_by_channel([
        make_entry(channel="WHATSAPP", spend=300, revenue=600),
        make_entry(channel="EMAIL-MKT", spend=100, revenue=400),
    ])
    bars = profitability_bars(rows)
    assert bars[0].channel == "EMAIL-MKT"
    assert bars[0].metric_label == "ROI"
    assert [b.metric_value for b in bars] == sorted((b.metric_value for b in bars), reverse=True)

    assert channel_ranking(rows)[0].channel == "EMAIL-MKT"

    shares = spend_distribution(rows)
    assert [s.channel for s in shares] == ["WHATSAPP", "EMAIL-MKT"]
    assert shares[0].pct == pytest.approx(75.0)
    assert spend_distribution(group_by_channel([])) == []
