import queue

import pytest

pytest.importorskip("tkinter")

from brilho.ui.views.products_view import PREVIEW_POLL_MS, ProductsView


class FakeLabel:
    def __init__(self):
        self.configs = []

    def config(self, **kw):
        self.configs.append(kw)


class FakeFrame:
    def __init__(self):
        self.scheduled = []

    def after(self, ms, fn):
        self.scheduled.append((ms, fn))


class FakeImages:
    def __init__(self, data):
        self.data = data
        self.urls = []

    def fetch(self, url):
        self.urls.append(url)
        return self.data


class FakeApp:
    def __init__(self, data=None):
        self.images = FakeImages(data)


def _view(data=None):
    view = ProductsView.__new__(ProductsView)
    view.app = FakeApp(data)
    view.frame = FakeFrame()
    view.preview = FakeLabel()
    view._preview_image = None
    view._preview_token = 0
    view._preview_queue = queue.Queue()
    return view


def test_preview_download_does_not_block_and_is_polled(monkeypatch):
    started = []

    class FakeThread:
        def __init__(self, target, args, daemon):
            started.append((target, args, daemon))

        def start(self):
            pass

    monkeypatch.setattr("brilho.ui.views.products_view.threading.Thread", FakeThread)
    view = _view()

    view._show_preview("https://cdn.example.com/anel.png")

    assert view.preview.configs[-1] == {"image": "", "text": "Carregando imagem..."}
    assert view.app.images.urls == []
    target, args, daemon = started[0]
    assert daemon
    assert view.frame.scheduled[0] == (PREVIEW_POLL_MS, view._poll_preview)

    # worker side, then the Tk side picks the result up
    target(*args)
    view._poll_preview()

    assert view.app.images.urls == ["https://cdn.example.com/anel.png"]
    assert view.preview.configs[-1] == {"image": "", "text": "Sem imagem"}


def test_poll_reschedules_until_result_arrives():
    view = _view()

    view._poll_preview()

    assert view.frame.scheduled == [(PREVIEW_POLL_MS, view._poll_preview)]
    assert view.preview.configs == []


def test_stale_preview_result_is_dropped():
    view = _view()
    view._preview_token = 2
    view._preview_queue.put((1, None))

    view._poll_preview()

    assert view.preview.configs == []


def test_blank_url_shows_placeholder_without_fetching():
    view = _view()

    view._show_preview("  ")

    assert view.preview.configs == [{"image": "", "text": "Sem imagem"}]
    assert view.frame.scheduled == []
