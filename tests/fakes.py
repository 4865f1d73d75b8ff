import threading


class FakeFetcher:
    """In-memory stand-in for PageFetcher keyed by URL."""

    def __init__(self, pages=None, json_responses=None):
        self.pages = dict(pages or {})
        self.json_responses = dict(json_responses or {})
        self.requested = []
        self.stats = {}
        self._lock = threading.Lock()

    def _log(self, url):
        with self._lock:
            self.requested.append(url)

    def get_text(self, url):
        self._log(url)
        return self.pages.get(url)

    def get_json(self, url, params=None, headers=None):
        self._log(url)
        return self.json_responses.get(url, (None, None))

    def close(self):
        pass


class FakeResponse:
    def __init__(self, status_code, text="", payload=None):
        self.status_code = status_code
        self.text = text
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


class FakeSession:
    """Replays a fixed sequence of responses for requests.Session.get."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.headers = {}
        self.calls = []
        self.closed = False

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append(url)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        self.closed = True
