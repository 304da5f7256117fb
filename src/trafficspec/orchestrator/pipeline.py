from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Union

import httpx

from trafficspec.capture.exchange import CapturedExchange
from trafficspec.capture.merge import merge_exchange
from trafficspec.capture.transport import AsyncCaptureTransport, CaptureTransport, Target
from trafficspec.config import CaptureConfig
from trafficspec.domain.models import SpecDocument
from trafficspec.store.json_store import SpecStore

logger = logging.getLogger(__name__)


class CaptureSession:
    """
    One capture run: a target, a spec document and the transports feeding it.

    Every recorded exchange is one merge into the store followed by a write
    of the whole document.
    """

    def __init__(self, config: CaptureConfig, store: Optional[SpecStore] = None):
        self.config = config
        self.target = Target.from_config(config)
        self.store = store or SpecStore(config.spec_path, resume=config.resume)
        logger.debug(
            "Capturing %s%s into %s", self.target.host, self.target.base_path, config.spec_path
        )

    @property
    def document(self) -> SpecDocument:
        return self.store.document

    def record(self, exchange: CapturedExchange) -> bool:
        """Merge one exchange and persist. False when it was skipped as non-JSON."""
        return self.store.update(
            lambda doc: merge_exchange(
                doc,
                exchange,
                base_path=self.config.base_path,
                conflict_policy=self.config.conflict_policy,
                enum_max_length=self.config.enum_max_length,
            )
        )

    # ----------------------------
    # httpx wiring
    # ----------------------------

    def transport(self, inner: Optional[httpx.BaseTransport] = None) -> CaptureTransport:
        return CaptureTransport(self.target, self.record, transport=inner)

    def async_transport(self, inner: Optional[httpx.AsyncBaseTransport] = None) -> AsyncCaptureTransport:
        return AsyncCaptureTransport(self.target, self.record, transport=inner)

    def client(self, transport: Optional[httpx.BaseTransport] = None, **kwargs: Any) -> httpx.Client:
        return httpx.Client(transport=self.transport(transport), **kwargs)

    def async_client(
        self, transport: Optional[httpx.AsyncBaseTransport] = None, **kwargs: Any
    ) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self.async_transport(transport), **kwargs)


def capture(base_url: str, spec_path: Union[str, Path], **options: Any) -> CaptureSession:
    """
    Start capturing traffic to `base_url` into the document at `spec_path`.

    The document is reset to an empty spec unless `resume=True` is passed.
    Other options map to CaptureConfig fields.
    """
    config = CaptureConfig(base_url=base_url, spec_path=Path(spec_path), **options)
    return CaptureSession(config)
