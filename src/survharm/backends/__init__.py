"""Backends for survey wave output (SPSS, CSV, R)."""

from .export import ExportFormat, export_wave, save_waves, subset_save_surveys

__all__ = ["ExportFormat", "export_wave", "save_waves", "subset_save_surveys"]
