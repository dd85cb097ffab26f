"""Pipeline orchestration for the generate and validate flows."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .analyzers import FileSetView, PatternDetector, discover_rules
from .analyzers.endpoints.nextjs import EndpointExtractor
from .analyzers.graph import DependencyGraphBuilder
from .assembly import DIAGRAM_DIR, AssemblyInput, Document, DocumentAssembler
from .config import ArchDocConfig, ConfigError, load_compiler_aliases, load_config
from .diagrams import DiagramBuilder, MermaidSerializer
from .extraction import DeclarationExtractor, FileParseError
from .logging import get_logger
from .models import (
    CodeModel,
    DependencyGraph,
    Diagnostic,
    Diagram,
    FileExtraction,
    PatternMatch,
    Severity,
    SourceFile,
    SourceSnapshot,
    UnresolvedImport,
)
from .source_indexer import SourceIndexer
from .validators import (
    REPORT_FILENAME,
    CompletenessValidator,
    ValidationReport,
    load_requirements,
    raise_for_report,
)


class NoParseableFilesError(RuntimeError):
    """Raised when the source tree yields no parseable TypeScript or JavaScript file."""


class GenerationCancelled(RuntimeError):
    """Raised when `Orchestrator.cancel` interrupts extraction."""


@dataclass
class GenerationResult:
    """Everything one `generate` run produced."""

    output_dir: Path
    model: CodeModel
    graph: DependencyGraph
    patterns: List[PatternMatch]
    diagrams: List[Diagram]
    documents: List[Document]
    written: List[Path] = field(default_factory=list)
    unresolved: Tuple[UnresolvedImport, ...] = ()


class Orchestrator:
    """Coordinates indexing, extraction, analysis, assembly and validation."""

    def __init__(
        self,
        indexer: SourceIndexer | None = None,
        extractor: DeclarationExtractor | None = None,
        assembler: DocumentAssembler | None = None,
    ) -> None:
        self.indexer = indexer or SourceIndexer()
        self.extractor = extractor or DeclarationExtractor()
        self.assembler = assembler or DocumentAssembler()
        self.logger = get_logger("orchestrator")
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Stop the running generation before the next file is extracted."""
        self._cancelled.set()

    def run_generate(
        self,
        root: str | Path,
        *,
        output: str | Path | None = None,
        config_path: str | Path | None = None,
    ) -> GenerationResult:
        """Analyze `root` and write documents and diagrams.

        Output is written before unresolved imports are reported, so a
        `ResolutionError` still leaves the partial documentation on disk.
        """
        root_path = Path(root).expanduser().resolve()
        self.logger.info("Starting generate run for %s", root_path)
        config = self._load_config(root_path, config_path)
        output_dir = Path(output).expanduser().resolve() if output else config.resolved_output_dir

        try:
            snapshot = self.indexer.index(
                root_path, exclude=config.exclude_paths, output_dir=output_dir
            )
            self.logger.info(
                "Indexed %d files (fingerprint %s)", len(snapshot.files), snapshot.fingerprint[:12]
            )
            extractions, skipped = self._extract(snapshot, config.extraction.workers)
        finally:
            self._cancelled.clear()

        endpoints = EndpointExtractor(config.routing_roots).extract(snapshot, extractions)
        model = CodeModel(snapshot, extractions, extra_entities=endpoints, skipped_files=skipped)
        for diagnostic in model.diagnostics:
            self.logger.warning("Skipped declaration at %s", diagnostic)
        self.logger.info(
            "Extracted %d entities from %d files (%d skipped)",
            len(model),
            len(extractions),
            len(skipped),
        )

        aliases = {**load_compiler_aliases(root_path), **config.path_aliases}
        build = DependencyGraphBuilder(aliases).build(model)
        self.logger.info(
            "Dependency graph: %d nodes, %d edges", len(build.graph.nodes), len(build.graph.edges)
        )

        try:
            rules = discover_rules(config.patterns.enabled or None)
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc
        patterns = PatternDetector(rules).detect(FileSetView.from_paths(snapshot.paths))
        self.logger.info("Detected %d patterns", len(patterns))

        diagrams = DiagramBuilder(config.diagrams.max_nodes).build(model, build.graph, patterns)
        documents = self.assembler.assemble(
            AssemblyInput(
                model=model,
                graph=build.graph,
                patterns=tuple(patterns),
                diagrams=tuple(diagrams),
                unresolved=build.unresolved,
            )
        )

        serializer = MermaidSerializer(config.diagrams.direction, config.diagrams.theme)
        written = self._write(output_dir, documents, diagrams, serializer)
        self.logger.info("Wrote %d files to %s", len(written), output_dir)

        build.raise_for_unresolved()
        return GenerationResult(
            output_dir=output_dir,
            model=model,
            graph=build.graph,
            patterns=patterns,
            diagrams=diagrams,
            documents=documents,
            written=written,
            unresolved=build.unresolved,
        )

    def run_validate(
        self,
        docs: str | Path | None = None,
        *,
        requirements: str | Path | None = None,
        report: str | Path | None = None,
        config_path: str | Path | None = None,
    ) -> ValidationReport:
        """Check generated documentation and write the JSON report.

        Raises `ValidationError` after writing the report when links are
        broken, requirements are missing, or expected documents are absent.
        """
        config = self._load_config(Path.cwd().resolve(), config_path)
        docs_dir = Path(docs).expanduser().resolve() if docs else config.resolved_output_dir
        requirements_path = (
            Path(requirements).expanduser().resolve() if requirements else config.validation.requirements
        )
        self.logger.info("Starting validate run for %s", docs_dir)

        validator = CompletenessValidator(
            load_requirements(requirements_path),
            config.validation.expected_documents,
        )
        result = validator.run(docs_dir)
        report_path = Path(report).expanduser().resolve() if report else docs_dir / REPORT_FILENAME
        result.write(report_path)
        self.logger.info("Validation report written to %s", report_path)

        raise_for_report(result)
        return result

    @staticmethod
    def _load_config(root: Path, config_path: str | Path | None) -> ArchDocConfig:
        config = load_config(Path(config_path) if config_path else root)
        config.root = root
        return config

    def _extract(
        self, snapshot: SourceSnapshot, workers: int
    ) -> Tuple[List[FileExtraction], List[Diagnostic]]:
        sources = snapshot.parseable()
        if not sources:
            raise NoParseableFilesError(
                f"No TypeScript or JavaScript sources found under {snapshot.root}"
            )

        results: Dict[str, FileExtraction] = {}
        skipped: Dict[str, Diagnostic] = {}

        def _run(source: SourceFile) -> Optional[FileExtraction]:
            if self._cancelled.is_set():
                return None
            self.logger.debug("Extracting %s", source.path)
            return self.extractor.extract(source)

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {pool.submit(_run, source): source for source in sources}
            for future in as_completed(futures):
                source = futures[future]
                try:
                    extraction = future.result()
                except FileParseError as exc:
                    self.logger.warning("Skipping %s: %s", source.path, exc.reason)
                    skipped[source.path] = Diagnostic(
                        path=source.path, line=1, message=exc.reason, severity=Severity.WARNING
                    )
                    continue
                if extraction is not None:
                    results[source.path] = extraction
                if self._cancelled.is_set():
                    for pending in futures:
                        pending.cancel()

        if self._cancelled.is_set():
            raise GenerationCancelled(
                f"Generation cancelled after {len(results)} of {len(sources)} files"
            )
        if not results:
            raise NoParseableFilesError(f"None of the {len(sources)} source files could be parsed")

        ordered = [results[path] for path in sorted(results)]
        return ordered, [skipped[path] for path in sorted(skipped)]

    def _write(
        self,
        output_dir: Path,
        documents: Sequence[Document],
        diagrams: Sequence[Diagram],
        serializer: MermaidSerializer,
    ) -> List[Path]:
        diagram_dir = output_dir / DIAGRAM_DIR
        diagram_dir.mkdir(parents=True, exist_ok=True)

        written: List[Path] = []
        for document in documents:
            path = output_dir / document.path
            path.write_text(document.render(), encoding="utf-8")
            written.append(path)
            self.logger.debug("Wrote %s", path)

        current = {diagram.filename for diagram in diagrams}
        for stale in sorted(diagram_dir.glob("*.mmd")):
            if stale.name not in current:
                stale.unlink()
                self.logger.debug("Removed stale diagram %s", stale)
        for diagram in diagrams:
            path = diagram_dir / diagram.filename
            path.write_text(serializer.render(diagram), encoding="utf-8")
            written.append(path)
            self.logger.debug("Wrote %s", path)
        return written


__all__ = [
    "GenerationCancelled",
    "GenerationResult",
    "NoParseableFilesError",
    "Orchestrator",
]
