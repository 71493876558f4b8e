import pytest

from ponchister.config import catalog_filters, load_config, save_config, validate_config
from ponchister.storage import DB


def test_defaults(tmp_path):
    cfg = load_config(DB(tmp_path / 'cfg.db'))
    assert cfg['soft_usage_limit'] == 3
    assert cfg['history_limit'] == 120
    assert cfg['fetch_attempts'] == 3
    assert cfg['min_year'] is None and cfg['max_year'] is None
    assert cfg['only_spanish'] is False


def test_save_then_load(tmp_path):
    db = DB(tmp_path / 'cfg.db')
    cfg = validate_config({
        'catalog_url': 'https://ponchister.example/',
        'min_year': '1980',
        'max_year': 1999,
        'only_spanish': True,
        'soft_usage_limit': 2,
        'history_limit': 50,
    })
    save_config(db, cfg)
    loaded = load_config(db)
    assert loaded['catalog_url'] == 'https://ponchister.example'
    assert loaded['min_year'] == 1980
    assert loaded['max_year'] == 1999
    assert loaded['only_spanish'] is True
    assert loaded['soft_usage_limit'] == 2
    assert loaded['history_limit'] == 50
    assert catalog_filters(loaded) == {'min_year': 1980, 'max_year': 1999, 'only_spanish': True}


@pytest.mark.parametrize('bad', [
    {'catalog_url': 'ftp://x'},
    {'min_year': 'soon'},
    {'min_year': 1800},
    {'min_year': 2000, 'max_year': 1990},
    {'soft_usage_limit': 0},
    {'history_limit': 5000},
    {'fetch_attempts': 9},
])
def test_validation_rejects(bad):
    with pytest.raises(ValueError):
        validate_config(bad)
