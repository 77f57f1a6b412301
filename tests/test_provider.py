import threading

import pytest

from ecosort.exceptions import SourceUnavailableError
from ecosort.models.provider import ModelProvider, StaticProvider


def test_loads_once():
    calls = []

    def loader():
        calls.append(1)
        return object()

    provider = ModelProvider("test model", loader)
    assert not provider.loaded
    first = provider.get()
    assert provider.get() is first
    assert provider.loaded
    assert len(calls) == 1


def test_concurrent_get_loads_once():
    calls = []
    started = threading.Event()

    def loader():
        calls.append(1)
        started.wait(0.05)
        return object()

    provider = ModelProvider("test model", loader)
    results = []
    threads = [threading.Thread(target=lambda: results.append(provider.get())) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(calls) == 1
    assert all(result is results[0] for result in results)


def test_failure_is_remembered_until_reset():
    calls = []

    def loader():
        calls.append(1)
        raise RuntimeError("no weights")

    provider = ModelProvider("test model", loader)
    for _ in range(3):
        with pytest.raises(SourceUnavailableError) as exc_info:
            provider.get()
        assert exc_info.value.source == "test model"
    assert len(calls) == 1

    provider.reset()
    with pytest.raises(SourceUnavailableError):
        provider.get()
    assert len(calls) == 2


def test_loader_returning_none_is_unavailable():
    provider = ModelProvider("test model", lambda: None)
    with pytest.raises(SourceUnavailableError):
        provider.get()


def test_static_provider():
    model = object()
    assert StaticProvider("static", model).get() is model
