#!/usr/bin/env python3
"""
Case Study Demo: Trust in institutions across Afrobarometer rounds

Shows the full workflow:
1. Read survey waves and document them
2. Create variable metadata
3. Select and name the variables to merge
4. Merge the waves
5. Harmonize the trust answers
6. Tabulate weighted trust by country and year

Usage:
    python demo_trust_casestudy.py                 # built-in example rounds
    python demo_trust_casestudy.py r5.sav r6.sav   # your own SPSS files
"""

import logging
import sys

from survharm.casestudy import harmonize_trust, run_trust_casestudy
from survharm.config import CaseStudyConfig
from survharm.examples import build_example_waves
from survharm.waves import pull_survey


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    sources = sys.argv[1:] or build_example_waves()
    config = CaseStudyConfig()

    print("=" * 80)
    print("CASE STUDY: TRUST IN INSTITUTIONS")
    print("=" * 80)

    result = run_trust_casestudy(sources, config)

    # =========================================================================
    # STEP 1: Documented waves
    # =========================================================================
    print("\n1. WAVES")
    print(result.documentation.to_string(index=False))

    # =========================================================================
    # STEP 2-3: Metadata and selection
    # =========================================================================
    print("\n2. METADATA (first rows)")
    print(result.metadata[["id", "var_name_orig", "label_orig", "n_labels"]].head(10).to_string(index=False))

    print("\n3. SELECTED VARIABLES")
    print(result.selection[["id", "var_name_orig", "var_name"]].to_string(index=False))

    # =========================================================================
    # STEP 4-5: Merge and harmonize
    # =========================================================================
    print("\n4. MERGED WAVES")
    for wave in result.merged:
        print(f"   {wave.id}: {', '.join(wave.columns)}")
    for warning in result.report.warnings:
        print(f"   ! {warning}")

    latest = pull_survey(result.merged, id=result.merged[-1].id)
    trust_cols = [c for c in latest.columns if c.startswith(config.trust_prefix)]
    if trust_cols:
        sample = latest.column(trust_cols[0])[:8]
        print(f"\n5. HARMONIZED SAMPLE ({latest.id}, {trust_cols[0]})")
        print("   original:   ", list(sample.as_character()))
        print("   harmonized: ", list(harmonize_trust(sample, config).as_character()))

    # =========================================================================
    # STEP 6: Summary table
    # =========================================================================
    print("\n6. WEIGHTED MEAN TRUST BY COUNTRY AND YEAR")
    print(result.summary.to_string(index=False))


if __name__ == "__main__":
    main()
