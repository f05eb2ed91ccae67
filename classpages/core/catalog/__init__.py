from .constants import RecordType, SPELL_LEVELS, SPELL_SCHOOLS, parse_record_type
from .models import ClassRecord, SubclassRecord, SpellRecord, SpellBucket
from .providers import CatalogProvider, DirectoryCatalogProvider, InMemoryCatalogProvider, SourceInfo
from .index_loader import IndexLoader

__all__ = [
    "RecordType",
    "SPELL_LEVELS",
    "SPELL_SCHOOLS",
    "parse_record_type",
    "ClassRecord",
    "SubclassRecord",
    "SpellRecord",
    "SpellBucket",
    "CatalogProvider",
    "DirectoryCatalogProvider",
    "InMemoryCatalogProvider",
    "SourceInfo",
    "IndexLoader",
]
