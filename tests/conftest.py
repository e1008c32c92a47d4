from __future__ import annotations

import socket
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import pytest

from onvif_lite.envelope import parse_envelope, value_for_path


def _probe_match_xml(
    relates_to: str,
    *,
    address: Optional[str] = "urn:uuid:dev1",
    scopes: str = "onvif://www.onvif.org/name/Front_Door other://x",
    xaddrs: str = "http://10.0.0.5/onvif/device_service http://10.0.0.6/x",
) -> bytes:
    epr = ""
    if address is not None:
        epr = f"<a:EndpointReference><a:Address>{address}</a:Address></a:EndpointReference>"
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<s:Envelope xmlns:s="http://www.w3.org/2003/05/soap-envelope"
            xmlns:a="http://schemas.xmlsoap.org/ws/2004/08/addressing"
            xmlns:d="http://schemas.xmlsoap.org/ws/2005/04/discovery">
  <s:Header>
    <a:MessageID>uuid:reply-1</a:MessageID>
    <a:RelatesTo>{relates_to}</a:RelatesTo>
    <a:Action>http://schemas.xmlsoap.org/ws/2005/04/discovery/ProbeMatches</a:Action>
  </s:Header>
  <s:Body>
    <d:ProbeMatches>
      <d:ProbeMatch>
        {epr}
        <d:Types>dn:NetworkVideoTransmitter</d:Types>
        <d:Scopes>{scopes}</d:Scopes>
        <d:XAddrs>{xaddrs}</d:XAddrs>
        <d:MetadataVersion>1</d:MetadataVersion>
      </d:ProbeMatch>
    </d:ProbeMatches>
  </s:Body>
</s:Envelope>
""".encode("utf-8")


@pytest.fixture
def probe_match_xml() -> Callable[..., bytes]:
    return _probe_match_xml


# Items a FakeSocket hands out: raw bytes, a callable receiving the probe's
# MessageID, or an exception to raise from recvfrom.
ScriptItem = Union[bytes, Callable[[str], bytes], BaseException]


class FakeSocket:
    def __init__(
        self,
        script: Sequence[ScriptItem] = (),
        *,
        bind_error: Optional[BaseException] = None,
        send_error: Optional[BaseException] = None,
        sockopt_error: Optional[BaseException] = None,
        on_drained: Optional[Callable[[], None]] = None,
        sender: str = "10.0.0.5",
    ) -> None:
        self.script = list(script)
        self.bind_error = bind_error
        self.send_error = send_error
        self.sockopt_error = sockopt_error
        self.options: Dict[tuple, Any] = {}
        self.on_drained = on_drained
        self.sender = sender
        self.bound: Optional[tuple] = None
        self.sent: List[tuple] = []
        self.timeouts: List[float] = []
        self.closed = False

    @property
    def message_id(self) -> Optional[str]:
        if not self.sent:
            return None
        return value_for_path(parse_envelope(self.sent[0][0]), "Envelope.Header.MessageID")

    def bind(self, addr: tuple) -> None:
        if self.bind_error is not None:
            raise self.bind_error
        self.bound = addr

    def setsockopt(self, level: int, option: int, value: Any) -> None:
        if self.sockopt_error is not None:
            raise self.sockopt_error
        self.options[(level, option)] = value

    def sendto(self, data: bytes, addr: tuple) -> int:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((data, addr))
        return len(data)

    def settimeout(self, value: float) -> None:
        self.timeouts.append(value)

    def recvfrom(self, size: int) -> tuple:
        if not self.script:
            if self.on_drained is not None:
                self.on_drained()
            raise socket.timeout("timed out")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            item = item(self.message_id or "")
        return item[:size], (self.sender, 3702)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_socket() -> type:
    return FakeSocket


class ResponseStub:
    def __init__(
        self,
        content: Union[bytes, str],
        status_code: int = 200,
        *,
        chunks: Optional[Sequence[Union[bytes, BaseException]]] = None,
    ) -> None:
        self.content = content.encode("utf-8") if isinstance(content, str) else content
        self.status_code = status_code
        self.text = self.content.decode("utf-8", errors="replace")
        self.chunks = list(chunks) if chunks is not None else [self.content]
        self.closed = False

    def iter_content(self, chunk_size: int = 1):
        for chunk in self.chunks:
            if isinstance(chunk, BaseException):
                raise chunk
            yield chunk

    def close(self) -> None:
        self.closed = True


class SessionStub:
    def __init__(self, outcome: Union[ResponseStub, BaseException]) -> None:
        self.outcome = outcome
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def post(
        self, url: str, *, data: bytes, headers: Dict[str, str], timeout: float, stream: bool = False
    ) -> ResponseStub:
        self.calls.append(
            {"url": url, "data": data, "headers": dict(headers), "timeout": timeout, "stream": stream}
        )
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def response_stub() -> type:
    return ResponseStub


@pytest.fixture
def session_stub() -> type:
    return SessionStub
