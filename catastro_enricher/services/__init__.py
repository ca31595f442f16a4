"""Service layer exports."""

from .lookup_builder import LookupBuilder
from .catastro import CatastroEnricher
from .merger import FeatureMerger, MergeOutcome
from .encoding import EncodingRecovery

__all__ = [
    "LookupBuilder",
    "CatastroEnricher",
    "FeatureMerger",
    "MergeOutcome",
    "EncodingRecovery",
]
