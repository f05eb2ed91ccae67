"""
Aggregation pass: catalogs -> joined hierarchy -> overlays -> enriched view.

Every call rebuilds from source; nothing is cached between passes. Passes are
independent, so two overlapping requests may finish in either order.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Union

from classpages.core.aggregation.enrichment import ContentLinkEnricher, Enricher, EnrichmentPipeline
from classpages.core.aggregation.joiner import index_spells, join_subclasses, name_sorted, partition_spells
from classpages.core.aggregation.view_model import AggregatedClass, ClassPage, EnrichedBucket, ViewModel
from classpages.core.catalog.constants import SOURCE_FAMILIES, SPELL_LEVELS, RecordType
from classpages.core.catalog.index_loader import IndexLoader
from classpages.core.catalog.models import ClassRecord
from classpages.core.catalog.providers import CatalogProvider, SourceInfo
from classpages.core.navigation.state_machine import (
    PAGE_SCOPE,
    NavigationAction,
    NavigationState,
    Stimulus,
    action_for,
    build_navigation,
    transition,
)
from classpages.core.observability.metrics import VIEW_BUILDS_TOTAL
from classpages.core.overlay.config_overlay import ConfigOverlay, apply_label_and_backdrop
from classpages.core.overlay.spell_list_editor import SpellListEditor, build_spell_list_editor
from classpages.core.reports import ReportLog
from classpages.core.settings.gateway import SettingsPersistenceGateway

log = logging.getLogger("classpages.pipeline")


@dataclass
class ServiceContext:
    """Everything an aggregation pass depends on; no ambient globals."""

    provider: CatalogProvider
    gateway: SettingsPersistenceGateway
    enricher: Enricher = field(default_factory=ContentLinkEnricher)
    default_subclass_label: Union[str, Callable[[ClassRecord], str]] = "Subclass"


@dataclass
class Hierarchy:
    classes: List[AggregatedClass] = field(default_factory=list)
    reports: ReportLog = field(default_factory=ReportLog)

    def get(self, identifier: Optional[str]) -> Optional[AggregatedClass]:
        for c in self.classes:
            if c.identifier == identifier:
                return c
        return None

    @property
    def identifiers(self) -> List[str]:
        return [c.identifier for c in self.classes]


class ClassPagesService:
    def __init__(self, ctx: ServiceContext):
        self.ctx = ctx
        self.loader = IndexLoader(ctx.provider)
        self.overlay = ConfigOverlay(ctx.gateway)
        self.enrichment = EnrichmentPipeline(ctx.enricher)

    async def _load_all(self, reports: ReportLog):
        sources = await self.overlay.sources()
        return await asyncio.gather(
            self.loader.load(RecordType.CLASS, sources[SOURCE_FAMILIES[RecordType.CLASS]], reports=reports),
            self.loader.load(RecordType.SUBCLASS, sources[SOURCE_FAMILIES[RecordType.SUBCLASS]], reports=reports),
            self.loader.load(RecordType.SPELL, sources[SOURCE_FAMILIES[RecordType.SPELL]], reports=reports),
        )

    async def aggregate(self) -> Hierarchy:
        """Load, join and overlay every class; no enrichment."""
        reports = ReportLog()
        classes, subclasses, spells = await self._load_all(reports)
        classes = name_sorted(classes)

        groups = join_subclasses(classes, subclasses, reports=reports)
        spell_index = index_spells(spells)

        assignments = await self.overlay.assignments()
        overrides = await self.overlay.overrides()

        out: List[AggregatedClass] = []
        for cls in classes:
            applied = apply_label_and_backdrop(cls, overrides, self.ctx.default_subclass_label)
            out.append(
                AggregatedClass(
                    record=cls,
                    label=applied.label,
                    backdrop=applied.backdrop,
                    subclasses=groups.get(cls.identifier, []),
                    spell_lists=partition_spells(
                        assignments.get(cls.identifier, []),
                        spell_index,
                        SPELL_LEVELS,
                        reports=reports,
                    ),
                )
            )
        return Hierarchy(classes=out, reports=reports)

    async def _enrich_page(self, agg: AggregatedClass, reports: ReportLog) -> ClassPage:
        bucket_sizes = [len(b.spells) for b in agg.spell_lists]
        flat_spells = [s for b in agg.spell_lists for s in b.spells]

        cls_task = self.enrichment.enrich_one(agg.record, reports=reports)
        subs_task = self.enrichment.enrich_all(agg.subclasses, reports=reports)
        spells_task = self.enrichment.enrich_all(flat_spells, with_description=False, reports=reports)
        cls, subs, spells = await asyncio.gather(cls_task, subs_task, spells_task)

        buckets: List[EnrichedBucket] = []
        pos = 0
        for b, size in zip(agg.spell_lists, bucket_sizes):
            buckets.append(EnrichedBucket(level=b.level, label=b.label, spells=spells[pos:pos + size]))
            pos += size

        return ClassPage(
            cls=cls,
            identifier=agg.identifier,
            subclass_label=agg.label,
            backdrop=agg.backdrop,
            subclasses=subs,
            spell_lists=buckets,
        )

    async def build_view(
        self,
        initial_class_identifier: Optional[str] = None,
        initial_subtab: Optional[str] = None,
        *,
        navigation: Optional[NavigationState] = None,
    ) -> ViewModel:
        hierarchy = await self.aggregate()
        reports = hierarchy.reports

        if not hierarchy.classes:
            VIEW_BUILDS_TOTAL.labels(outcome="empty").inc()
            return ViewModel(reports=reports.to_list())

        nav = build_navigation(
            hierarchy.identifiers,
            initial_class=initial_class_identifier,
            initial_subtab=initial_subtab,
            previous=navigation,
        )
        active = hierarchy.get(nav.active_class) or hierarchy.classes[0]
        page = await self._enrich_page(active, reports)

        VIEW_BUILDS_TOTAL.labels(outcome="ok").inc()
        log.info(
            "view built class=%s classes=%d reports=%d",
            active.identifier,
            len(hierarchy.classes),
            len(reports.reports),
        )
        return ViewModel(
            classes=[c.summary() for c in hierarchy.classes],
            page=page,
            navigation=nav,
            reports=reports.to_list(),
        )

    async def load_classes(self) -> List[ClassRecord]:
        sources = await self.overlay.sources()
        classes = await self.loader.load(RecordType.CLASS, sources[SOURCE_FAMILIES[RecordType.CLASS]])
        return name_sorted(classes)

    async def spell_list_editor(self, query: Optional[str] = None) -> SpellListEditor:
        sources = await self.overlay.sources()
        classes, spells = await asyncio.gather(
            self.loader.load(RecordType.CLASS, sources[SOURCE_FAMILIES[RecordType.CLASS]]),
            self.loader.load(RecordType.SPELL, sources[SOURCE_FAMILIES[RecordType.SPELL]]),
        )
        assignments = await self.overlay.assignments()
        return build_spell_list_editor(name_sorted(classes), spells, assignments, query=query)

    async def list_overrides(self) -> List[Dict[str, Any]]:
        classes = await self.load_classes()
        overrides = await self.overlay.overrides()
        out = []
        for c in classes:
            ov = overrides.get(c.identifier)
            out.append({
                "identifier": c.identifier,
                "name": c.name,
                "label": ov.label if ov else None,
                "backdrop": ov.backdrop if ov else None,
            })
        return out

    def available_sources(self) -> List[SourceInfo]:
        return self.ctx.provider.list_sources()


class ClassPagesController:
    """
    Capability interface for a host UI: fetch the current view model and
    feed it navigation actions. Switching the page-level class triggers a
    rebuild; other transitions only move tab selections.
    """

    def __init__(
        self,
        service: ClassPagesService,
        *,
        initial_class: Optional[str] = None,
        initial_subtab: Optional[str] = None,
    ):
        self.service = service
        self.initial_class = initial_class
        self.initial_subtab = initial_subtab
        self._view: Optional[ViewModel] = None

    async def render(self, class_identifier: Optional[str] = None) -> ViewModel:
        previous = self._view.navigation if self._view else None
        first = previous is None
        if class_identifier is None and first:
            class_identifier = self.initial_class
        self._view = await self.service.build_view(
            class_identifier,
            self.initial_subtab if first else None,
            navigation=previous,
        )
        return self._view

    async def get_view_model(self) -> ViewModel:
        if self._view is None:
            return await self.render()
        return self._view

    async def handle_action(self, action: Union[NavigationAction, Stimulus]) -> ViewModel:
        view = await self.get_view_model()
        if view.navigation is None:
            return view

        if isinstance(action, Stimulus):
            resolved = action_for(action)
            if resolved is None:
                return view
            action = resolved

        before = view.navigation.active_member(PAGE_SCOPE)
        nav = transition(view.navigation, action)
        after = nav.active_member(PAGE_SCOPE)

        if after != before:
            self._view = replace(view, navigation=nav)
            return await self.render(after)

        self._view = replace(view, navigation=nav)
        return self._view
