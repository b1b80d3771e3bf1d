import pytest

from shopapi.config import Settings


def test_defaults_are_valid(monkeypatch):
    for name in ('BATCH_FETCH_SIZE', 'ORDER_SEARCH_LIMIT', 'DEFAULT_PAGE_LIMIT', 'MAX_PAGE_LIMIT'):
        monkeypatch.delenv(name, raising=False)
    s = Settings()
    assert s.BATCH_FETCH_SIZE == 100
    assert s.ORDER_SEARCH_LIMIT == 1000
    assert s.DEFAULT_PAGE_LIMIT == 100


@pytest.mark.parametrize('name', ['BATCH_FETCH_SIZE', 'ORDER_SEARCH_LIMIT', 'DEFAULT_PAGE_LIMIT', 'MAX_PAGE_LIMIT'])
def test_non_positive_sizes_are_rejected(monkeypatch, name):
    monkeypatch.setenv(name, '0')
    with pytest.raises(RuntimeError):
        Settings()


def test_default_page_limit_must_fit_max(monkeypatch):
    monkeypatch.setenv('DEFAULT_PAGE_LIMIT', '500')
    monkeypatch.setenv('MAX_PAGE_LIMIT', '200')
    with pytest.raises(RuntimeError):
        Settings()
