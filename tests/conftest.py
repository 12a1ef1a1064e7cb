"""Pytest fixtures for AlbumPy tests."""
import asyncio
from collections import defaultdict
from typing import Dict, List, Tuple

import pytest

from albumpy.core.api import APIConfig, TransportClient, LinearBackoffStrategy
from albumpy.core.auth import Credential
from albumpy.core.auth.credential import NEVER_EXPIRES_MS
from albumpy.core.exceptions import TransportError
from albumpy.core.upload import UploadableFile


def dropbox_error(summary: str, status: int = 409, error=None) -> TransportError:
    """Build a TransportError shaped like a Dropbox error response."""
    payload = {'error_summary': summary}
    if error is not None:
        payload['error'] = error
    return TransportError(summary, status, payload)


class FakeTokenProvider:
    """Hands out numbered tokens and counts invalidations."""

    def __init__(self):
        self.calls = 0
        self.invalidations = 0

    async def get_token(self) -> Credential:
        self.calls += 1
        return Credential(token=f"token-{self.calls}", expires_at_epoch_ms=NEVER_EXPIRES_MS)

    def invalidate(self) -> None:
        self.invalidations += 1

    async def close(self) -> None:
        pass


class RecordingSleep:
    """Replacement for asyncio.sleep that records delays instead of waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)

    @property
    def total(self) -> float:
        return sum(self.delays)


class FakeWireClient:
    """
    In-memory Dropbox backend with the DropboxWireClient interface.

    - fail(endpoint, *errors): raise these errors, in order, before the call takes effect
    - drop_response(endpoint): the call takes effect, then a timeout is raised
    - block(endpoint): the next call waits until release(endpoint)
    """

    def __init__(self):
        self.calls: List[Tuple[str, dict]] = []
        self.tokens_seen: List[str] = []
        self.files: Dict[str, bytes] = {}
        self.folders: List[str] = []
        self.sessions: Dict[str, bytearray] = {}
        self.links: Dict[str, str] = {}
        self.closed = False
        self._failures: Dict[str, List[Exception]] = defaultdict(list)
        self._dropped: Dict[str, int] = defaultdict(int)
        self._blockers: Dict[str, asyncio.Event] = {}
        self._entered: Dict[str, asyncio.Event] = {}

    # Scripting

    def fail(self, endpoint: str, *errors: Exception) -> None:
        self._failures[endpoint].extend(errors)

    def drop_response(self, endpoint: str, count: int = 1) -> None:
        self._dropped[endpoint] += count

    def block(self, endpoint: str) -> asyncio.Event:
        """Returns an event set once a call to ``endpoint`` is waiting."""
        self._blockers[endpoint] = asyncio.Event()
        self._entered[endpoint] = asyncio.Event()
        return self._entered[endpoint]

    def release(self, endpoint: str) -> None:
        blocker = self._blockers.pop(endpoint)
        self._entered.pop(endpoint)
        blocker.set()

    def endpoints(self) -> List[str]:
        return [name for name, _ in self.calls]

    def calls_to(self, endpoint: str) -> List[dict]:
        return [details for name, details in self.calls if name == endpoint]

    async def _enter(self, endpoint: str, access_token: str, **details) -> None:
        self.calls.append((endpoint, details))
        self.tokens_seen.append(access_token)
        if endpoint in self._blockers:
            self._entered[endpoint].set()
            await self._blockers[endpoint].wait()
        if self._failures[endpoint]:
            raise self._failures[endpoint].pop(0)

    def _leave(self, endpoint: str) -> None:
        if self._dropped[endpoint]:
            self._dropped[endpoint] -= 1
            raise TransportError(f"timeout: {endpoint}")

    def _commit(self, path: str, content: bytes) -> dict:
        final = path
        counter = 1
        while final in self.files:
            stem, dot, ext = path.rpartition('.')
            final = f"{stem} ({counter}).{ext}" if dot else f"{path} ({counter})"
            counter += 1
        self.files[final] = content
        return {
            'name': final.rsplit('/', 1)[-1],
            'path_display': final,
            'id': f"id:{len(self.files)}",
            'size': len(content),
            'rev': 'rev1',
        }

    def _check_offset(self, session_id: str, offset: int) -> bytearray:
        data = self.sessions[session_id]
        if offset != len(data):
            raise dropbox_error(
                'incorrect_offset/..',
                error={'.tag': 'incorrect_offset', 'correct_offset': len(data)}
            )
        return data

    # DropboxWireClient interface

    async def upload(self, access_token: str, content: bytes, path: str) -> dict:
        await self._enter('upload', access_token, path=path, size=len(content))
        result = self._commit(path, bytes(content))
        self._leave('upload')
        return result

    async def upload_session_start(self, access_token: str, chunk: bytes) -> str:
        await self._enter('start', access_token, offset=0, size=len(chunk))
        session_id = f"session-{len(self.sessions) + 1}"
        self.sessions[session_id] = bytearray(chunk)
        self._leave('start')
        return session_id

    async def upload_session_append(self, access_token: str, session_id: str, offset: int, chunk: bytes) -> None:
        await self._enter('append', access_token, session_id=session_id, offset=offset, size=len(chunk))
        self._check_offset(session_id, offset).extend(chunk)
        self._leave('append')

    async def upload_session_finish(
        self, access_token: str, session_id: str, offset: int, chunk: bytes, path: str
    ) -> dict:
        await self._enter('finish', access_token, session_id=session_id, offset=offset, size=len(chunk), path=path)
        data = self._check_offset(session_id, offset)
        data.extend(chunk)
        result = self._commit(path, bytes(self.sessions.pop(session_id)))
        self._leave('finish')
        return result

    async def create_folder(self, access_token: str, path: str) -> dict:
        await self._enter('create_folder', access_token, path=path)
        if path in self.folders:
            raise dropbox_error("path/conflict/folder/..")
        self.folders.append(path)
        return {'metadata': {'path_display': path}}

    async def create_shared_link(self, access_token: str, path: str) -> dict:
        await self._enter('create_shared_link', access_token, path=path)
        if path in self.links:
            raise dropbox_error('shared_link_already_exists/metadata/..')
        url = f"https://www.dropbox.com/scl/fo/{len(self.links) + 1}?dl=0"
        self.links[path] = url
        return {'url': url, 'path_lower': path.lower()}

    async def list_shared_links(self, access_token: str, path: str) -> dict:
        await self._enter('list_shared_links', access_token, path=path)
        if path in self.links:
            return {'links': [{'url': self.links[path]}], 'has_more': False}
        return {'links': [], 'has_more': False}

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def tokens():
    """Token provider that never fails."""
    return FakeTokenProvider()


@pytest.fixture
def sleeper():
    """Records backoff delays instead of sleeping."""
    return RecordingSleep()


@pytest.fixture
def wire():
    """In-memory Dropbox backend."""
    return FakeWireClient()


@pytest.fixture
def transport(wire, tokens, sleeper):
    """Real retrying transport over the in-memory backend."""
    return TransportClient(
        wire,
        tokens,
        APIConfig(),
        strategy=LinearBackoffStrategy(max_attempts=5, base_delay=2.0, sleep=sleeper)
    )


@pytest.fixture
def make_file():
    """Factory for in-memory files with deterministic content."""
    def factory(name: str, size: int, mime_type: str = 'image/jpeg') -> UploadableFile:
        content = (bytes(range(251)) * (size // 251 + 1))[:size]
        return UploadableFile(name=name, byte_length=size, mime_type=mime_type, content=content)
    return factory
