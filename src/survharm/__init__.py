"""
survharm: Survey Wave Harmonization Package

Imports waves of a repeated survey from statistical files, documents
their variables, merges the ones that ask the same question and recodes
their value labels onto one common scale.

ARCHITECTURAL GUARANTEE:
------------------------
Original codes are never lost:
    - Imports keep user-missing codes as values
    - Labels and missing codes travel beside the data
    - Every recoding produces a new column with new labels

Layers:
    io / backends        files in and out
    metadata / analyzer  read-only inventories
    merge / harmonize    renaming and recoding
    casestudy            the trust-in-institutions walkthrough
"""

__version__ = "0.1.0"
