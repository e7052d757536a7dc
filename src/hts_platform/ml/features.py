"""Feature encoding for the HTS case-finding model.

Raw form answers arrive as a positional list of coded concept identifiers and
a few numbers. ``encode_features`` turns them into the flat one-hot vector the
remote model scores. Unknown codes leave their group at 0.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, field_validator

from hts_platform import concepts
from hts_platform.logging_utils import get_logger

logger = get_logger("hts_features")

MINOR_AGE_LIMIT = 15

RAW_INPUT_POSITIONS: Tuple[str, ...] = (
    "age",
    "entry_point",
    "ever_tested",
    "gender",
    "disability",
    "marital_status",
    "months_since_last_test",
    "population_type",
    "self_tested",
    "tb_screening",
    "test_strategy",
    "tested_as",
)

_NUMERIC_FIELDS = ("age", "months_since_last_test")


def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _to_code(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    code = str(value).strip()
    return code or None


class HTSRawInput(BaseModel):
    """Screening answers in the fixed positional order used by the HTS form."""
    model_config = ConfigDict(frozen=True)

    age: Optional[float] = None
    entry_point: Optional[str] = None
    ever_tested: Optional[str] = None
    gender: Optional[str] = None
    disability: Optional[str] = None
    marital_status: Optional[str] = None
    months_since_last_test: Optional[float] = None
    population_type: Optional[str] = None
    self_tested: Optional[str] = None
    tb_screening: Optional[str] = None
    test_strategy: Optional[str] = None
    tested_as: Optional[str] = None

    @field_validator(*_NUMERIC_FIELDS, mode="before")
    @classmethod
    def coerce_number(cls, v: Any) -> Optional[float]:
        return _to_number(v)

    @field_validator(
        *(name for name in RAW_INPUT_POSITIONS if name not in _NUMERIC_FIELDS),
        mode="before",
    )
    @classmethod
    def coerce_code(cls, v: Any) -> Optional[str]:
        return _to_code(v)

    @classmethod
    def from_sequence(cls, values: Sequence[Any]) -> "HTSRawInput":
        """Build from ``[age, entry_point, ever_tested, gender, ...]``.

        Missing trailing positions are treated as unanswered. Extra
        positions are ignored.
        """
        return cls(**dict(zip(RAW_INPUT_POSITIONS, values)))


class FeatureVector(BaseModel):
    """Variable values sent to the case-finding model.

    ``AgeAtTest`` carries the client's age in years. Earlier KenyaEMR form
    builds always sent 0 here, so scores for the same answers can differ
    from theirs.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    AgeAtTest: float = 0
    MonthsSinceLastTest: float = 0
    GenderMale: int = 0
    GenderFemale: int = 0
    KeyPopulationTypeGP: int = 0
    KeyPopulationTypeSW: int = 0
    MaritalStatusMarried: int = 0
    MaritalStatusDivorced: int = 0
    MaritalStatusPolygamous: int = 0
    MaritalStatusWidowed: int = 0
    MaritalStatusSingle: int = 0
    MaritalStatusMinor: int = 0
    PatientDisabledNo: int = 0
    PatientDisabledDisabled: int = 0
    EverTestedForHIVYes: int = 0
    EverTestedForHivNo: int = 0
    ClientTestedAsIndividual: int = 0
    ClientTestedAsCouple: int = 0
    EntryPointVCT: int = 0
    EntryPointOPD: int = 0
    EntryPointMTC: int = 0
    EntryPointIPD: int = 0
    EntryPointMOBILE: int = 0
    EntryPointOther: int = 0
    EntryPointHB: int = 0
    EntryPointPEDS: int = 0
    EntryPointVMMC: int = 0
    EntryPointTB: int = 0
    EntryPointCCC: int = 0
    EntryPointPNS: int = 0
    TestingStrategyVCT: int = 0
    TestingStrategyHB: int = 0
    TestingStrategyMOBILE: int = 0
    TestingStrategyHP: int = 0
    TestingStrategyNP: int = 0
    TBScreeningNoPresumedTB: int = 0
    TBScreeningPresumedTB: int = 0
    ClientSelfTestedNo: int = 0
    ClientSelfTestedYes: int = 0

    def as_dict(self) -> Dict[str, float]:
        return self.model_dump()


FEATURE_NAMES: Tuple[str, ...] = tuple(FeatureVector.model_fields)


# One table per mutually exclusive group: code -> feature set to 1.
GENDER_CODES: Mapping[str, str] = {
    "M": "GenderMale",
    "F": "GenderFemale",
}

MARITAL_STATUS_CODES: Mapping[str, str] = {
    concepts.MARRIED_MONOGAMOUS: "MaritalStatusMarried",
    concepts.MARRIED_POLYGAMOUS: "MaritalStatusPolygamous",
    concepts.DIVORCED: "MaritalStatusDivorced",
    concepts.WIDOWED: "MaritalStatusWidowed",
    concepts.NEVER_MARRIED: "MaritalStatusSingle",
}

POPULATION_TYPE_CODES: Mapping[str, str] = {
    concepts.GENERAL_POPULATION: "KeyPopulationTypeGP",
    concepts.KEY_POPULATION: "KeyPopulationTypeSW",
}

DISABILITY_CODES: Mapping[str, str] = {
    concepts.NO: "PatientDisabledNo",
    concepts.YES: "PatientDisabledDisabled",
}

EVER_TESTED_CODES: Mapping[str, str] = {
    concepts.YES: "EverTestedForHIVYes",
    concepts.NO: "EverTestedForHivNo",
}

TESTED_AS_CODES: Mapping[str, str] = {
    concepts.TESTED_AS_INDIVIDUAL: "ClientTestedAsIndividual",
    concepts.TESTED_AS_COUPLE: "ClientTestedAsCouple",
}

ENTRY_POINT_CODES: Mapping[str, str] = {
    "159940": "EntryPointVCT",
    concepts.VCT_SITE: "EntryPointVCT",
    concepts.OUTPATIENT_DEPARTMENT: "EntryPointOPD",
    concepts.MATERNITY: "EntryPointMTC",
    concepts.INPATIENT_CARE: "EntryPointIPD",
    concepts.MOBILE_OUTREACH: "EntryPointMOBILE",
    concepts.HOME_BASED: "EntryPointHB",
    concepts.PEDIATRIC_CLINIC: "EntryPointPEDS",
    concepts.OTHER_NON_CODED: "EntryPointOther",
    concepts.VMMC_CLINIC: "EntryPointVMMC",
    concepts.TB_CLINIC: "EntryPointTB",
}

TEST_STRATEGY_CODES: Mapping[str, str] = {
    concepts.HOME_BASED: "TestingStrategyHB",
    concepts.MOBILE_OUTREACH: "TestingStrategyMOBILE",
    concepts.HOSPITAL_PATIENT: "TestingStrategyHP",
    concepts.NON_PATIENT: "TestingStrategyNP",
    concepts.INTEGRATED_VCT: "TestingStrategyVCT",
    concepts.STANDALONE_VCT: "TestingStrategyVCT",
}

SELF_TESTED_CODES: Mapping[str, str] = {
    concepts.NO: "ClientSelfTestedNo",
    concepts.YES: "ClientSelfTestedYes",
}

TB_SCREENING_CODES: Mapping[str, str] = {
    **{code: "TBScreeningNoPresumedTB" for code in concepts.NO_PRESUMED_TB},
    **{code: "TBScreeningPresumedTB" for code in concepts.PRESUMED_TB},
}

# (raw input attribute, lookup table)
CATEGORICAL_GROUPS: Tuple[Tuple[str, Mapping[str, str]], ...] = (
    ("gender", GENDER_CODES),
    ("marital_status", MARITAL_STATUS_CODES),
    ("population_type", POPULATION_TYPE_CODES),
    ("disability", DISABILITY_CODES),
    ("ever_tested", EVER_TESTED_CODES),
    ("entry_point", ENTRY_POINT_CODES),
    ("test_strategy", TEST_STRATEGY_CODES),
    ("self_tested", SELF_TESTED_CODES),
    ("tb_screening", TB_SCREENING_CODES),
)


def _tested_as_code(raw: HTSRawInput) -> Optional[str]:
    # Older form versions record individual/couple in the ever-tested slot.
    return raw.tested_as if raw.tested_as is not None else raw.ever_tested


def encode_features(raw: Union[HTSRawInput, Sequence[Any]]) -> FeatureVector:
    """Encode screening answers into a ``FeatureVector``.

    Accepts an ``HTSRawInput`` or the positional list the form produces.
    Never raises on unknown or malformed values. A positive age is copied
    into ``AgeAtTest``; the categorical rules alone leave it at 0.
    """
    if not isinstance(raw, HTSRawInput):
        raw = HTSRawInput.from_sequence(raw)

    values: Dict[str, float] = {}

    if raw.age is not None and raw.age > 0:
        values["AgeAtTest"] = raw.age
    if raw.age is not None and raw.age < MINOR_AGE_LIMIT:
        values["MaritalStatusMinor"] = 1
    if raw.months_since_last_test is not None and raw.months_since_last_test > 0:
        values["MonthsSinceLastTest"] = raw.months_since_last_test

    unmatched = []
    for group, table in CATEGORICAL_GROUPS:
        code = getattr(raw, group)
        feature = table.get(code) if code is not None else None
        if feature is not None:
            values[feature] = 1
        elif code is not None and not (group == "ever_tested" and code in TESTED_AS_CODES):
            unmatched.append(group)

    tested_as = _tested_as_code(raw)
    if tested_as in TESTED_AS_CODES:
        values[TESTED_AS_CODES[tested_as]] = 1
    elif raw.tested_as is not None:
        unmatched.append("tested_as")

    if unmatched:
        logger.debug("Unrecognized codes left at default", groups=unmatched)

    return FeatureVector(**values)
