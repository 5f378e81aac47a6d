"""vcf-fingerprint: extract genotype-likelihood fingerprints from VCF files."""

import json
import logging
import time
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from . import __version__
from .config import ConfigValidationError, ExtractConfig, load_config, validate_config
from .errors import ExtractionCancelled, FormatError
from .extractor import extract_fingerprints
from .references import load_haplotype_map
from .writer import FingerprintWriter, read_fingerprint


def version_callback(value: bool) -> None:
    if value:
        print(__version__)
        raise typer.Exit()


app = typer.Typer(
    name="vcf-fingerprint", help="Extract genotype-likelihood fingerprints from VCF files"
)
console = Console()


@app.callback()
def main_callback(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version", callback=version_callback, is_eager=True, help="Show version and exit"
        ),
    ] = None,
) -> None:
    pass


def setup_logging(verbose: bool, quiet: bool, default_level: str = "INFO") -> None:
    """Configure logging based on verbosity flags."""
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, default_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("vcf_fingerprint").setLevel(level)


def _resolve_config(
    config_file: Path | None,
    locus_max_reads: int | None,
    validation_stringency: str | None,
) -> ExtractConfig:
    overrides = {
        "locus_max_reads": locus_max_reads,
        "validation_stringency": validation_stringency,
    }
    if config_file:
        return load_config(config_file, overrides=overrides)
    overrides = {k: v for k, v in overrides.items() if v is not None}
    validate_config(overrides)
    return ExtractConfig(**overrides)


@app.command()
def extract(
    vcf_path: Path = typer.Argument(..., help="Input VCF file (.vcf, .vcf.gz, .bcf)"),
    haplotype_map: Path = typer.Option(
        ..., "--haplotype-map", "-H", help="Haplotype map of fingerprinting SNPs"
    ),
    output_dir: Path = typer.Option(
        ..., "--output", "-O", help="Output directory for fingerprint VCFs"
    ),
    index_path: Annotated[
        Path | None, typer.Option("--index", help="Index for the input VCF (.tbi, .csi)")
    ] = None,
    locus_max_reads: Annotated[
        int | None,
        typer.Option(
            "--locus-max-reads",
            help="Maximum observations used as evidence for any given locus (default 50)",
        ),
    ] = None,
    validation_stringency: Annotated[
        str | None,
        typer.Option(
            "--validation-stringency",
            help="STRICT, LENIENT or SILENT handling of malformed records (default STRICT)",
        ),
    ] = None,
    config_file: Annotated[
        Path | None, typer.Option("--config", "-c", help="TOML configuration file")
    ] = None,
    report: Annotated[
        Path | None, typer.Option("--report", "-r", help="Write JSON report to file")
    ] = None,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-error output"),
) -> None:
    """Compute a fingerprint for every sample in a VCF.

    Writes one <sample>.fingerprint.vcf per sample to the output directory,
    listing the summed genotype likelihoods at each haplotype block.
    """
    try:
        config = _resolve_config(config_file, locus_max_reads, validation_stringency)
    except (ConfigValidationError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None

    setup_logging(verbose, quiet, config.log_level)

    if not vcf_path.exists():
        console.print(f"[red]Error: VCF file not found: {vcf_path}[/red]")
        raise typer.Exit(1)
    if index_path is not None and not index_path.exists():
        console.print(f"[red]Error: VCF index not found: {index_path}[/red]")
        raise typer.Exit(1)
    if not haplotype_map.exists():
        console.print(f"[red]Error: Haplotype map not found: {haplotype_map}[/red]")
        raise typer.Exit(1)

    try:
        panel = load_haplotype_map(haplotype_map, config.validation_stringency)
    except (OSError, FormatError) as e:
        console.print(f"[red]Error: Could not load haplotype map: {e}[/red]")
        raise typer.Exit(1) from None
    if panel.rows_skipped and not quiet:
        console.print(
            f"[yellow]⚠[/yellow] Skipped {panel.rows_skipped:,} malformed haplotype map rows"
        )

    writer = FingerprintWriter(
        output_dir,
        panel,
        source=str(vcf_path),
        validation_stringency=config.validation_stringency,
    )
    try:
        writer.check_output_dir()
    except OSError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None

    start = time.perf_counter()
    try:
        if not quiet:
            console.print(f"Fingerprinting {vcf_path.name}...")
        store, stats = extract_fingerprints(vcf_path, panel, config, index_path=index_path)
    except FormatError as e:
        console.print(f"[red]Format Error: {e}[/red]")
        console.print(
            "[yellow]Tip:[/yellow] Use --validation-stringency LENIENT to skip malformed records"
        )
        raise typer.Exit(1) from None
    except ExtractionCancelled as e:
        console.print(f"[yellow]Cancelled: {e}[/yellow]")
        raise typer.Exit(1) from None
    except OSError as e:
        console.print(f"[red]Error: Could not read {vcf_path}: {e}[/red]")
        raise typer.Exit(1) from None

    write_report = writer.write_all(store)
    elapsed = time.perf_counter() - start

    if not quiet:
        for sample, path in write_report.written.items():
            console.print(f"[green]✓[/green] {sample}: {len(store[sample])} blocks -> {path}")
        if stats.records_malformed:
            console.print(
                f"[yellow]⚠[/yellow] Skipped {stats.records_malformed:,} malformed records"
            )
    for sample, message in write_report.failures.items():
        console.print(f"[red]✗[/red] {sample}: {message}")

    if report:
        report_data = {
            "status": "success" if write_report.ok else "partial",
            "vcf_file": str(vcf_path),
            "haplotype_map": str(haplotype_map),
            "locus_max_reads": config.locus_max_reads,
            "validation_stringency": config.validation_stringency.value,
            "samples_written": {str(k): str(v) for k, v in write_report.written.items()},
            "samples_failed": {str(k): v for k, v in write_report.failures.items()},
            "stats": stats.to_dict(),
            "haplotype_map_rows_skipped": panel.rows_skipped,
            "elapsed_seconds": round(elapsed, 3),
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        }
        with open(report, "w") as f:
            json.dump(report_data, f, indent=2)
            f.write("\n")
        if not quiet:
            console.print(f"  Report: {report}")

    if not write_report.ok:
        raise typer.Exit(1)


@app.command()
def show(
    fingerprint_path: Path = typer.Argument(..., help="Fingerprint VCF to display"),
    haplotype_map: Path = typer.Option(
        ..., "--haplotype-map", "-H", help="Haplotype map used to create the fingerprint"
    ),
) -> None:
    """Display the blocks and likelihoods stored in a fingerprint VCF."""
    try:
        panel = load_haplotype_map(haplotype_map)
        fingerprint, metadata = read_fingerprint(fingerprint_path, panel)
    except (OSError, FormatError, ConfigValidationError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None

    console.print(f"\n[bold]Fingerprint[/bold] {metadata.sample}")
    console.print("─" * 30)
    console.print(f"  Source: {metadata.source}")
    console.print(f"  Assumed contamination: {metadata.assumed_contamination}")
    if metadata.validation_stringency:
        console.print(f"  Validation stringency: {metadata.validation_stringency.value}")
    console.print(f"  Blocks: {len(fingerprint)} of {len(panel)}")
    console.print()

    for block, evidence in fingerprint.items():
        gl = ", ".join(f"{value:.3f}" for value in evidence.likelihoods.as_tuple())
        console.print(
            f"  {block.name}\t{block.anchor}\t{evidence.likelihoods.most_likely_genotype()}"
            f"\tGL=({gl})\tobs={evidence.observations}"
        )


@app.command()
def panel(
    haplotype_map: Path = typer.Argument(..., help="Haplotype map to summarize"),
) -> None:
    """Summarize a haplotype map."""
    try:
        loaded = load_haplotype_map(haplotype_map)
    except (OSError, FormatError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None

    console.print(f"\n[bold]Haplotype map[/bold] {haplotype_map.name}")
    console.print("─" * 30)
    console.print(f"  Blocks: {len(loaded):,}")
    console.print(f"  Sites: {loaded.site_count:,}")
    multi_site = sum(1 for block in loaded if len(block) > 1)
    console.print(f"  Multi-site blocks: {multi_site:,}")
    console.print(f"  Contigs: {', '.join(loaded.contigs)}")


if __name__ == "__main__":
    app()
