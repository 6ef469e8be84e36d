"""Importer package housing settlement CSV ingestion logic."""

from .settlement_importer import SettlementImporter

__all__ = ["SettlementImporter"]
