"""
Tests for normalizer functions - transform provider data to engine series.
Using fixture payloads for exact output validation.
"""

import json
from datetime import date
from pathlib import Path

import pandas as pd
import pytest

from ingestion.transforms.normalizers import (
    normalize_chart_rows,
    normalize_chart_dividends,
    series_from_chart,
    index_from_chart,
    series_from_frame,
    series_map_from_frames,
    index_from_frame
)
from ingestion.transforms.validators import ValidationError
from returns_engine.models import DividendEvent


FIXTURES = Path(__file__).parent.parent.parent / 'tests' / 'fixtures'
T0 = 1704153600  # 2024-01-02 00:00 UTC
DAY = 24 * 60 * 60


class TestChartNormalizer:
    """Tests for chart payload normalization."""

    def load_fixture(self, filename):
        """Load JSON fixture from fixtures directory."""
        with open(FIXTURES / filename, 'r') as f:
            return json.load(f)

    def test_rows_drop_null_close(self):
        """Rows without a close are dropped."""
        rows = normalize_chart_rows(self.load_fixture('chart_ko.json'), ticker='KO')

        assert [r['close'] for r in rows] == [59.00, 59.60, 60.20]
        assert [r['timestamp'] for r in rows] == [1704205800, 1704292200, 1704465000]
        assert all(r['ticker'] == 'KO' for r in rows)

    def test_dividends(self):
        dividends = normalize_chart_dividends(self.load_fixture('chart_ko.json'))
        assert dividends == [DividendEvent(1704292200, 0.46)]

    def test_series_from_chart(self):
        series = series_from_chart('KO', self.load_fixture('chart_ko.json'))

        assert series.ticker == 'KO'
        assert len(series) == 3
        assert series.start_date == date(2024, 1, 2)
        assert series.dividends == (DividendEvent(1704292200, 0.46),)

    def test_accepts_result_element(self):
        """The first result element works as well as the full response."""
        payload = self.load_fixture('chart_ko.json')['chart']['result'][0]
        assert len(series_from_chart('KO', payload)) == 3

    def test_empty_payload(self):
        """Missing data gives an empty series."""
        assert len(series_from_chart('KO', None)) == 0
        assert len(series_from_chart('KO', {'chart': {'result': []}})) == 0
        assert normalize_chart_dividends({}) == []

    def test_misaligned_arrays_rejected(self):
        payload = {'timestamp': [T0, T0 + DAY], 'indicators': {'quote': [{'close': [1.0]}]}}

        with pytest.raises(ValidationError, match="differ in length"):
            normalize_chart_rows(payload, ticker='KO')

    def test_index_from_chart(self):
        index = index_from_chart(self.load_fixture('chart_ko.json'), symbol='^GSPC')

        assert index.prices == (59.00, 59.60, 60.20)
        assert index.symbol == '^GSPC'


class TestFrameNormalizer:
    """Tests for DataFrame normalization."""

    @pytest.fixture
    def prices_df(self):
        return pd.read_csv(FIXTURES / 'prices.csv')

    @pytest.fixture
    def dividends_df(self):
        return pd.read_csv(FIXTURES / 'dividends.csv')

    def test_series_from_frame(self, prices_df, dividends_df):
        series = series_from_frame(prices_df, 'ko', dividends_df)

        assert series.ticker == 'KO'
        assert series.prices == (59.00, 59.60, 59.10, 60.20)
        assert series.timestamps == tuple(T0 + i * DAY for i in range(4))
        assert series.dividends == (DividendEvent(T0 + DAY, 0.46),)

    def test_timestamp_column(self):
        df = pd.DataFrame({'timestamp': [T0 + DAY, T0], 'close': [2.0, 1.0]})

        series = series_from_frame(df, 'ABC')

        # Sorted by time
        assert series.prices == (1.0, 2.0)
        assert series.timestamps == (T0, T0 + DAY)

    def test_duplicates_keep_last(self):
        df = pd.DataFrame({
            'date': ['2024-01-02', '2024-01-03', '2024-01-03'],
            'close': [1.0, 2.0, 2.5],
        })

        series = series_from_frame(df, 'ABC')

        assert series.prices == (1.0, 2.5)

    def test_missing_close_dropped(self):
        df = pd.DataFrame({'date': ['2024-01-02', '2024-01-03'], 'close': [1.0, None]})
        assert series_from_frame(df, 'ABC').prices == (1.0,)

    def test_unknown_ticker_empty(self, prices_df):
        assert len(series_from_frame(prices_df, 'XYZ')) == 0

    def test_missing_close_column_rejected(self):
        with pytest.raises(ValidationError, match="'close'"):
            series_from_frame(pd.DataFrame({'date': ['2024-01-02']}), 'ABC')

    def test_missing_date_column_rejected(self):
        with pytest.raises(ValidationError, match="'timestamp' or 'date'"):
            series_from_frame(pd.DataFrame({'close': [1.0]}), 'ABC')

    def test_non_positive_close_rejected(self):
        df = pd.DataFrame({'date': ['2024-01-02', '2024-01-03'], 'close': [1.0, 0.0]})

        with pytest.raises(ValidationError, match="close must be positive"):
            series_from_frame(df, 'ABC')

    def test_series_map(self, prices_df, dividends_df):
        series = series_map_from_frames(prices_df, dividends_df)

        assert list(series.keys()) == ['KO', 'PEP']
        assert series['PEP'].dividends == (DividendEvent(T0 + 2 * DAY, 1.265),)

    def test_series_map_requires_ticker(self):
        with pytest.raises(ValidationError, match="'ticker'"):
            series_map_from_frames(pd.DataFrame({'date': ['2024-01-02'], 'close': [1.0]}))

    def test_index_from_frame(self):
        index = index_from_frame(pd.read_csv(FIXTURES / 'index.csv'), symbol='^GSPC')

        assert len(index) == 4
        assert index.timestamps[0] == T0
        assert index.prices[0] == pytest.approx(4742.83)
