"""Certificate document storage.

Rendering the printable certificate is out of scope for this service; the
store only has to hand back a stable reference that is persisted on the
certificate row.  References are derived from the verification code, so
the row can be written before the document is.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from academy.models.certificate import CertificateDocument


@runtime_checkable
class ArtifactStore(Protocol):
    def certificate_ref(self, verification_code: str) -> str: ...
    async def store_certificate(self, document: CertificateDocument) -> str: ...


class InMemoryArtifactStore:
    def __init__(self) -> None:
        self.documents: dict[str, CertificateDocument] = {}

    def certificate_ref(self, verification_code: str) -> str:
        return f"memory://certificates/{verification_code}"

    async def store_certificate(self, document: CertificateDocument) -> str:
        ref = self.certificate_ref(document.verification_code)
        self.documents[ref] = document
        return ref
