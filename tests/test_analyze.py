import pandas as pd
import pytest

from edmforecast.analyze import _as_list, analyze_table, run
from edmforecast.config import AnalysisConfig
from edmforecast.Datasets.SyntheticDataset import SyntheticDataset
from edmforecast.exceptions import InvalidParameter

SMALL = dict(max_E=4, thetas=(0, 1, 4), lib_sizes=(3, 10, 50, 100), samples=5, seed=0)


def test_analyze_table_outputs():
    table = SyntheticDataset.load_coupled_logistic(300)
    outputs = analyze_table(table, 'y', ['x'], AnalysisConfig(**SMALL))
    assert set(outputs) == {'embed_dimension', 'predict_nonlinear', 'errors', 'forecast_simplex',
                            'forecast_smap', 'forecast_arima', 'ccm_x'}
    assert list(outputs['errors'].index) == ['simplex', 'smap', 'arima']
    assert len(outputs['embed_dimension']) == 4
    ccm = outputs['ccm_x']
    assert set(ccm['direction']) == {'y:x', 'x:y'}
    assert {10, 50, 100} <= set(ccm['lib_size']) <= {3, 10, 50, 100}


def test_run_writes_tables(tmp_path):
    table = SyntheticDataset.load_coupled_logistic(200)
    frame = table.to_frame()
    frame.index = pd.date_range('2020-01-01', periods=200, freq='D', name='date')
    csv_path = tmp_path / 'series.csv'
    frame.reset_index().to_csv(csv_path, index=False)

    errors = run(str(csv_path), target='x', drivers='y', output_dir=str(tmp_path / 'out'), progress=True, **SMALL)
    assert 'rho' in errors.columns
    assert (tmp_path / 'out' / 'embed_dimension.csv').exists()
    assert (tmp_path / 'out' / 'ccm_y.csv').exists()


def test_config_split():
    assert AnalysisConfig().progress is False
    assert AnalysisConfig(train_fraction=0.8).lib_pred(500) == ([1, 400], [401, 500])
    with pytest.raises(InvalidParameter):
        AnalysisConfig(train_fraction=1.5)


def test_as_list():
    assert _as_list('a, b') == ['a', 'b']
    assert _as_list(('a', 'b')) == ['a', 'b']
    assert _as_list(None) == []
