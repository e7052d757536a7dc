"""CIEL concept identifiers used by the HTS screening form.

OpenMRS concept UUIDs for CIEL concepts are the numeric code right-padded
with ``A`` to 36 characters, e.g. ``1065`` -> ``1065AAAA...A``.
"""

from __future__ import annotations


def ciel(code: int | str) -> str:
    """Return the long-form concept UUID for a CIEL numeric code."""
    return str(code).ljust(36, "A")


YES = ciel(1065)
NO = ciel(1066)

# Marital status
MARRIED_MONOGAMOUS = ciel(5555)
MARRIED_POLYGAMOUS = ciel(159715)
DIVORCED = ciel(1058)
WIDOWED = ciel(1059)
NEVER_MARRIED = ciel(1057)

# Population type
GENERAL_POPULATION = ciel(164928)
KEY_POPULATION = ciel(164929)

# Tested as
TESTED_AS_INDIVIDUAL = ciel(164957)
TESTED_AS_COUPLE = ciel(164958)

# Entry point / testing strategy shared codes
VCT_SITE = ciel(159940)
OUTPATIENT_DEPARTMENT = ciel(160542)
MATERNITY = ciel(160456)
INPATIENT_CARE = ciel(5485)
MOBILE_OUTREACH = ciel(159939)
HOME_BASED = ciel(159938)
PEDIATRIC_CLINIC = ciel(162181)
OTHER_NON_CODED = ciel(5622)
VMMC_CLINIC = ciel(162223)
TB_CLINIC = ciel(160541)

HOSPITAL_PATIENT = ciel(164163)
NON_PATIENT = ciel(164953)
INTEGRATED_VCT = ciel(164954)
STANDALONE_VCT = ciel(164955)

# TB screening outcomes
NO_PRESUMED_TB = (ciel(1660), ciel(160737))
PRESUMED_TB = (ciel(142177), ciel(1111))
