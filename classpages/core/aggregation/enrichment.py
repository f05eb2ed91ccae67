from __future__ import annotations

import asyncio
import html
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from classpages.core.catalog.models import CatalogRecord
from classpages.core.reports import ReportKind, ReportLog

log = logging.getLogger("classpages.enrichment")


class Enricher(Protocol):
    async def enrich(self, raw_text: str) -> str:
        ...


_CONTENT_LINK = re.compile(r"@UUID\[([^\]]+)\](?:\{([^}]*)\})?")
_INLINE_ROLL = re.compile(r"\[\[/r(?:oll)?\s+([^\]]+)\]\]")


class ContentLinkEnricher:
    """
    Minimal rich-text renderer for catalog descriptions.

    Descriptions are already markup; only the two inline macros are rewritten:
      @UUID[Compendium.x.y.Item.id]{Label}  -> content link anchor
      [[/r 1d6 + 2]]                          -> inline roll span
    """

    async def enrich(self, raw_text: str) -> str:
        text = _CONTENT_LINK.sub(self._link, raw_text or "")
        return _INLINE_ROLL.sub(self._roll, text)

    @staticmethod
    def _link(m: re.Match) -> str:
        uuid = m.group(1)
        label = m.group(2) or uuid.rsplit(".", 1)[-1]
        return (
            f'<a class="content-link" data-uuid="{html.escape(uuid, quote=True)}">'
            f"{html.escape(label)}</a>"
        )

    @staticmethod
    def _roll(m: re.Match) -> str:
        formula = m.group(1).strip()
        return f'<span class="inline-roll" data-formula="{html.escape(formula, quote=True)}">{html.escape(formula)}</span>'


def pack_of(uuid: str) -> str:
    """``Compendium.dnd5e.spells.Item.abc`` -> ``dnd5e.spells``."""
    parts = (uuid or "").split(".")
    if len(parts) < 3:
        return ""
    return f"{parts[1]}.{parts[2]}"


@dataclass(frozen=True)
class EnrichedRecord:
    record: CatalogRecord
    id: str
    pack: str
    description_markup: Optional[str]

    @property
    def uuid(self) -> str:
        return self.record.uuid

    @property
    def name(self) -> str:
        return self.record.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.record.to_dict(),
            "id": self.id,
            "pack": self.pack,
            "description_markup": self.description_markup,
        }


class EnrichmentPipeline:
    def __init__(self, enricher: Enricher):
        self.enricher = enricher

    async def enrich_one(
        self, record: CatalogRecord, *, with_description: bool = True, reports: Optional[ReportLog] = None
    ) -> EnrichedRecord:
        markup: Optional[str] = None
        if with_description:
            try:
                markup = await self.enricher.enrich(record.description)
            except Exception as e:
                markup = ""
                if reports is not None:
                    reports.report(
                        ReportKind.ENRICHMENT_FAILED,
                        f"Description of '{record.name}' could not be rendered: {e}",
                        subject=record.uuid,
                        logger=log,
                    )
                else:
                    log.warning("enrichment failed uuid=%s err=%s", record.uuid, e)
        return EnrichedRecord(record=record, id=record.id, pack=pack_of(record.uuid), description_markup=markup)

    async def enrich_all(
        self,
        records: Sequence[CatalogRecord],
        *,
        with_description: bool = True,
        reports: Optional[ReportLog] = None,
    ) -> List[EnrichedRecord]:
        """Enrich every record concurrently; output order matches input order."""
        return list(
            await asyncio.gather(
                *(self.enrich_one(r, with_description=with_description, reports=reports) for r in records)
            )
        )
