"""Tests for archdoc.orchestrator."""

from __future__ import annotations

from pathlib import Path
from typing import Dict

import pytest

from archdoc.analyzers.graph import ResolutionError
from archdoc.assembly import DOCUMENT_ORDER
from archdoc.diagrams.builder import CORE_DIAGRAMS
from archdoc.models import EntityKind
from archdoc.orchestrator import GenerationCancelled, NoParseableFilesError, Orchestrator
from tests._fixtures.repo_builder import RepoBuilder
from tests._fixtures.sample_app import SAMPLE_APP


def _tree(directory: Path) -> Dict[str, bytes]:
    return {
        path.relative_to(directory).as_posix(): path.read_bytes()
        for path in sorted(directory.rglob("*"))
        if path.is_file()
    }


def test_generate_writes_documents_and_diagrams(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    repo_builder.write(SAMPLE_APP)
    output = tmp_path / "out"

    result = Orchestrator().run_generate(repo_builder.path(), output=output)

    assert result.output_dir == output.resolve()
    files = set(_tree(output))
    assert set(DOCUMENT_ORDER) <= files
    assert {f"diagrams/{name}.mmd" for name in CORE_DIAGRAMS} <= files
    assert "diagrams/auth-flow.mmd" in files
    assert len(result.written) == len(files)
    assert result.unresolved == ()

    readme = (output / "README.md").read_text(encoding="utf-8")
    assert readme.startswith("# Project Documentation\n")
    hooks = (output / "hooks.md").read_text(encoding="utf-8")
    assert "> Loads the user directory." in hooks


def test_generate_is_deterministic(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    repo_builder.write(SAMPLE_APP)
    orchestrator = Orchestrator()

    orchestrator.run_generate(repo_builder.path(), output=tmp_path / "first")
    orchestrator.run_generate(repo_builder.path(), output=tmp_path / "second")

    assert _tree(tmp_path / "first") == _tree(tmp_path / "second")


def test_every_entity_owns_exactly_one_section(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    repo_builder.write(SAMPLE_APP)

    result = Orchestrator().run_generate(repo_builder.path(), output=tmp_path / "out")

    owners = [
        section.entity_id
        for document in result.documents
        for section in document.sections
        if section.entity_id is not None
    ]
    assert sorted(owners) == sorted(entity.id for entity in result.model.entities)
    assert len(owners) == len(set(owners))
    kinds = {entity.kind for entity in result.model.entities}
    assert kinds == set(EntityKind)


def test_hook_and_provider_files_are_detected(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    repo_builder.write(SAMPLE_APP)

    result = Orchestrator().run_generate(repo_builder.path(), output=tmp_path / "out")

    patterns = {match.key: match for match in result.patterns}
    assert "src/hooks/useUsers.ts" in patterns["custom-hooks"].files
    assert "src/context/AuthProvider.tsx" in patterns["provider"].files
    assert patterns["custom-hooks"].confidence == 0.95
    endpoint = result.model.get("src/app/api/users/route.ts#GET")
    assert endpoint.route == "/api/users"
    assert endpoint.authentication is True


def test_generate_skips_undecodable_files(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    repo_builder.write(SAMPLE_APP)
    repo_builder.write_bytes("src/lib/legacy.ts", b"export const x = '\xff';\n")

    result = Orchestrator().run_generate(repo_builder.path(), output=tmp_path / "out")

    assert [item.path for item in result.model.skipped_files] == ["src/lib/legacy.ts"]
    readme = (tmp_path / "out" / "README.md").read_text(encoding="utf-8")
    assert "`src/lib/legacy.ts:1` file is not valid UTF-8 text" in readme


def test_unresolved_import_raises_after_writing(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    repo_builder.write(SAMPLE_APP)
    repo_builder.write(
        {
            "src/components/Broken.tsx": """
            import { Gone } from "./Gone";

            export const Broken = () => <Gone />;
            """
        }
    )
    output = tmp_path / "out"

    with pytest.raises(ResolutionError) as excinfo:
        Orchestrator().run_generate(repo_builder.path(), output=output)

    assert [item.specifier for item in excinfo.value.unresolved] == ["./Gone"]
    readme = (output / "README.md").read_text(encoding="utf-8")
    assert "cannot resolve `./Gone`" in readme


def test_stale_diagrams_are_removed(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    repo_builder.write(SAMPLE_APP)
    output = tmp_path / "out"
    orchestrator = Orchestrator()
    orchestrator.run_generate(repo_builder.path(), output=output)
    assert (output / "diagrams" / "auth-flow.mmd").exists()

    (repo_builder.path() / "src/lib/auth.ts").rename(repo_builder.path() / "src/lib/session.ts")
    (repo_builder.path() / "src/context/AuthProvider.tsx").unlink()
    repo_builder.write(
        {
            "src/app/api/users/route.ts": """
            export async function GET() {
              return Response.json([]);
            }
            """
        }
    )
    orchestrator.run_generate(repo_builder.path(), output=output)

    assert not (output / "diagrams" / "auth-flow.mmd").exists()
    assert (output / "diagrams" / "data-flow.mmd").exists()


def test_generate_uses_configured_output_dir(repo_builder: RepoBuilder) -> None:
    repo_builder.write(SAMPLE_APP)
    repo_builder.write({".archdoc.yml": "output_dir: site/docs\ndiagrams:\n  direction: LR\n"})

    result = Orchestrator().run_generate(repo_builder.path())

    expected = (repo_builder.path() / "site" / "docs").resolve()
    assert result.output_dir == expected
    diagram = (expected / "diagrams" / "dependency-graph.mmd").read_text(encoding="utf-8")
    assert "graph LR" in diagram


def test_generate_requires_parseable_sources(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    repo_builder.write({"README.md": "# Nothing to see\n"})

    with pytest.raises(NoParseableFilesError):
        Orchestrator().run_generate(repo_builder.path(), output=tmp_path / "out")


def test_cancelled_generation_stops_and_resets(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    repo_builder.write(SAMPLE_APP)
    orchestrator = Orchestrator()

    orchestrator.cancel()
    with pytest.raises(GenerationCancelled):
        orchestrator.run_generate(repo_builder.path(), output=tmp_path / "out")
    assert not (tmp_path / "out").exists()

    result = orchestrator.run_generate(repo_builder.path(), output=tmp_path / "out")
    assert result.documents


ROOT_LEVEL_APP = {
    "lib/format.ts": """
    export interface FormatOptions {
      upper: boolean;
    }

    export function formatName(name: string, options: FormatOptions): string {
      return options.upper ? name.toUpperCase() : name;
    }
    """,
    "app/page.tsx": """
    import { formatName, FormatOptions } from "@/lib/format";

    const options: FormatOptions = { upper: true };

    export default function Page() {
      return <main>{formatName("home", options)}</main>;
    }
    """,
}


def test_alias_imports_without_compiler_paths_are_external(
    repo_builder: RepoBuilder, tmp_path: Path
) -> None:
    repo_builder.write(ROOT_LEVEL_APP)

    result = Orchestrator().run_generate(repo_builder.path(), output=tmp_path / "out")

    assert result.unresolved == ()
    assert result.graph.imported_files("app/page.tsx") == ()


def test_alias_imports_follow_tsconfig_paths(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    repo_builder.write(ROOT_LEVEL_APP)
    repo_builder.write({"tsconfig.json": '{"compilerOptions": {"paths": {"@/*": ["./*"]}}}\n'})

    result = Orchestrator().run_generate(repo_builder.path(), output=tmp_path / "out")

    assert result.unresolved == ()
    assert result.graph.imported_files("app/page.tsx") == ("lib/format.ts",)
    edges = {(edge.source, edge.target) for edge in result.graph.edges}
    assert ("app/page.tsx#Page", "lib/format.ts#FormatOptions") in edges
