"""Typer CLI for HTS risk screening."""
from __future__ import annotations

import asyncio
import json
from datetime import datetime
from typing import Optional

import typer

from hts_platform.config import get_config
from hts_platform.logging_utils import configure_logging
from hts_platform.ml.features import HTSRawInput, encode_features
from hts_platform.ml.scoring import RiskScoringClient, ScoringError

app = typer.Typer(help="HTS risk screening against the case-finding model")


def _raw_input(
    age: Optional[float],
    entry_point: Optional[str],
    ever_tested: Optional[str],
    gender: Optional[str],
    disability: Optional[str],
    marital_status: Optional[str],
    months_since_last_test: Optional[float],
    population_type: Optional[str],
    self_tested: Optional[str],
    tb_screening: Optional[str],
    test_strategy: Optional[str],
    tested_as: Optional[str],
) -> HTSRawInput:
    return HTSRawInput(
        age=age,
        entry_point=entry_point,
        ever_tested=ever_tested,
        gender=gender,
        disability=disability,
        marital_status=marital_status,
        months_since_last_test=months_since_last_test,
        population_type=population_type,
        self_tested=self_tested,
        tb_screening=tb_screening,
        test_strategy=test_strategy,
        tested_as=tested_as,
    )


AgeOption = typer.Option(None, help="Age in years at test")
EntryPointOption = typer.Option(None, "--entry-point", help="Entry point concept")
EverTestedOption = typer.Option(None, "--ever-tested", help="Ever tested for HIV concept")
GenderOption = typer.Option(None, help="M or F")
DisabilityOption = typer.Option(None, help="Disability concept")
MaritalStatusOption = typer.Option(None, "--marital-status", help="Marital status concept")
MonthsOption = typer.Option(None, "--months-since-last-test", help="Months since last HIV test")
PopulationOption = typer.Option(None, "--population-type", help="Population type concept")
SelfTestedOption = typer.Option(None, "--self-tested", help="Self tested concept")
TbOption = typer.Option(None, "--tb-screening", help="TB screening outcome concept")
StrategyOption = typer.Option(None, "--test-strategy", help="Testing strategy concept")
TestedAsOption = typer.Option(None, "--tested-as", help="Tested as individual or couple concept")


@app.command()
def encode(
    age: Optional[float] = AgeOption,
    entry_point: Optional[str] = EntryPointOption,
    ever_tested: Optional[str] = EverTestedOption,
    gender: Optional[str] = GenderOption,
    disability: Optional[str] = DisabilityOption,
    marital_status: Optional[str] = MaritalStatusOption,
    months_since_last_test: Optional[float] = MonthsOption,
    population_type: Optional[str] = PopulationOption,
    self_tested: Optional[str] = SelfTestedOption,
    tb_screening: Optional[str] = TbOption,
    test_strategy: Optional[str] = StrategyOption,
    tested_as: Optional[str] = TestedAsOption,
) -> None:
    """Print the encoded feature vector as JSON."""
    raw = _raw_input(
        age, entry_point, ever_tested, gender, disability, marital_status,
        months_since_last_test, population_type, self_tested, tb_screening, test_strategy, tested_as,
    )
    typer.echo(json.dumps(encode_features(raw).as_dict(), indent=2))


@app.command()
def score(
    age: Optional[float] = AgeOption,
    entry_point: Optional[str] = EntryPointOption,
    ever_tested: Optional[str] = EverTestedOption,
    gender: Optional[str] = GenderOption,
    disability: Optional[str] = DisabilityOption,
    marital_status: Optional[str] = MaritalStatusOption,
    months_since_last_test: Optional[float] = MonthsOption,
    population_type: Optional[str] = PopulationOption,
    self_tested: Optional[str] = SelfTestedOption,
    tb_screening: Optional[str] = TbOption,
    test_strategy: Optional[str] = StrategyOption,
    tested_as: Optional[str] = TestedAsOption,
    encounter_date: Optional[datetime] = typer.Option(None, "--encounter-date", formats=["%Y-%m-%d"]),
    timeout: Optional[float] = typer.Option(None, help="Scoring deadline in seconds"),
) -> None:
    """Score one client against the remote model and print the recommendation."""
    raw = _raw_input(
        age, entry_point, ever_tested, gender, disability, marital_status,
        months_since_last_test, population_type, self_tested, tb_screening, test_strategy, tested_as,
    )

    async def _run() -> str:
        async with RiskScoringClient(get_config().scoring) as scorer:
            return await scorer.recommend(
                raw,
                encounter_date=encounter_date.date() if encounter_date else None,
                timeout=timeout,
            )

    try:
        message = asyncio.run(_run())
    except ScoringError as e:
        typer.echo(f"Scoring failed: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(message)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Bind port"),
) -> None:
    """Run the HTS risk API with uvicorn."""
    import uvicorn

    config = get_config()
    configure_logging(level=config.log_level)
    uvicorn.run("hts_platform.api.main:app", host=host, port=port, reload=config.debug)


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
