import numpy as np
import pandas as pd
import pytest

from ..errors import InvalidInput
from ..frame import GroupByPredictor, records_from_frame, records_to_frame
from ..predict import batch_predict


@pytest.fixture
def sample_data():
    rng = np.random.default_rng(0)
    n = 200
    df = pd.DataFrame({
        'group': rng.choice(['A', 'B', 'C'], size=n),
        'bin': rng.integers(0, 3, size=n),
        'x': rng.normal(loc=0, scale=1, size=n),
    })
    slopes = df['group'].map({'A': 1.0, 'B': -2.0, 'C': 0.5})
    df['y'] = slopes * df['x'] + df['bin'] + rng.normal(0, 0.1, size=n)
    df['weight'] = 1.0
    return df


def test_records_from_frame_drops_missing():
    df = pd.DataFrame({'k': ['a', None, 'b'], 'x': [1.0, 2.0, np.nan]})
    assert records_from_frame(df) == [{'k': 'a', 'x': 1.0}, {'x': 2.0}, {'k': 'b'}]
    assert len(records_from_frame(df, dropna=False)[1]) == 2


def test_records_to_frame_round_trip(sample_data):
    df = sample_data.head(10)
    pd.testing.assert_frame_equal(records_to_frame(records_from_frame(df)), df.reset_index(drop=True))


def test_make_group_fits_basic(sample_data):
    dfGB = GroupByPredictor.make_group_fits(sample_data, ['group'], 'x', 'y', suffix='_fit')
    assert list(dfGB.columns) == ['group', 'y_slope_x_fit', 'y_intercept_fit', 'bin_count_fit']
    assert dfGB['bin_count_fit'].sum() == len(sample_data)
    assert dfGB['bin_count_fit'].dtype == np.int32
    slopes = dict(zip(dfGB['group'], dfGB['y_slope_x_fit']))
    assert slopes['A'] == pytest.approx(1.0, abs=0.3)
    assert slopes['B'] == pytest.approx(-2.0, abs=0.3)
    assert slopes['C'] == pytest.approx(0.5, abs=0.3)


def test_make_group_fits_min_points():
    df = pd.DataFrame({'g': ['a', 'a', 'a', 'b', 'b'], 'x': [1, 2, 3, 1, 2], 'y': [1, 2, 3, 1, 2]})
    dfGB = GroupByPredictor.make_group_fits(df, ['g'], 'x', 'y', min_points=3)
    assert dfGB['g'].tolist() == ['a']


def test_make_group_fits_missing_column(sample_data):
    with pytest.raises(InvalidInput):
        GroupByPredictor.make_group_fits(sample_data, ['group'], 'x', 'nope')


@pytest.mark.parametrize('n_jobs', [1, 2])
def test_batch_predict_frame_matches_records(sample_data, n_jobs):
    new_xs = [-1.0, 0.0, 2.5]
    df_pred = GroupByPredictor.batch_predict_frame(
        sample_data, ['group', 'bin'], 'x', 'y', new_xs, n_jobs=n_jobs
    )
    expected = batch_predict(records_from_frame(sample_data), ['group', 'bin'], 'x', 'y', new_xs)
    assert len(df_pred) == len(expected)
    assert df_pred['group'].tolist() == [r['group'] for r in expected]
    assert df_pred['bin'].tolist() == [r['bin'] for r in expected]
    np.testing.assert_allclose(df_pred['x'].to_numpy(), [r['x'] for r in expected])
    np.testing.assert_allclose(df_pred['y'].to_numpy(), [r['y'] for r in expected], rtol=1e-12)


def test_batch_predict_frame_empty_when_all_filtered():
    df = pd.DataFrame({'g': ['a', 'b'], 'x': [1.0, 2.0], 'y': [1.0, 2.0]})
    out = GroupByPredictor.batch_predict_frame(df, ['g'], 'x', 'y', [3.0])
    assert out.empty
    assert list(out.columns) == ['g', 'x', 'y']


def test_batch_predict_frame_does_not_mutate(sample_data):
    before = sample_data.copy()
    GroupByPredictor.batch_predict_frame(sample_data, ['group'], 'x', 'y', [1.0])
    pd.testing.assert_frame_equal(sample_data, before)


def test_batch_predict_frame_skips_rows_with_missing_target():
    df = pd.DataFrame({'g': ['a'] * 4, 'x': [1.0, 2.0, 3.0, 4.0], 'y': [2.0, 4.0, np.nan, 8.0]})
    out = GroupByPredictor.batch_predict_frame(df, ['g'], 'x', 'y', [5.0])
    assert out['y'].tolist() == pytest.approx([10.0])
    dfGB = GroupByPredictor.make_group_fits(df, ['g'], 'x', 'y')
    assert dfGB['bin_count'].tolist() == [3]


def test_make_group_fits_missing_predictor_below_min_points():
    df = pd.DataFrame({'g': ['a', 'a', 'b', 'b'], 'x': [1.0, np.nan, 1.0, 2.0], 'y': [1.0, 2.0, 1.0, 3.0]})
    dfGB = GroupByPredictor.make_group_fits(df, ['g'], 'x', 'y')
    assert dfGB['g'].tolist() == ['b']


def test_batch_predict_frame_keeps_new_xs_dtype():
    df = pd.DataFrame({'g': ['a'] * 3, 'x': [1, 2, 3], 'y': [2, 4, 6]})
    out = GroupByPredictor.batch_predict_frame(df, ['g'], 'x', 'y', [7, 8])
    expected = batch_predict(records_from_frame(df), ['g'], 'x', 'y', [7, 8])
    assert out['x'].tolist() == [r['x'] for r in expected] == [7, 8]
    assert all(isinstance(v, int) for v in out['x'].tolist())
    assert out['y'].tolist() == pytest.approx([14.0, 16.0])
