"""Tests for archdoc.source_indexer."""

from __future__ import annotations

from hashlib import sha256
from pathlib import Path

import pytest

from archdoc.source_indexer import SourceIndexer, directory_summaries, language_breakdown
from tests._fixtures.repo_builder import RepoBuilder


def test_index_builds_path_ordered_snapshot(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "src/components/Button.tsx": "export const Button = () => <button />;\n",
            "src/lib/api.ts": "export function get() {}\n",
            "README.md": "# Demo\n",
            "node_modules/react/index.js": "module.exports = {};\n",
            ".next/cache.js": "//\n",
        }
    )

    snapshot = repo_builder.index()

    assert snapshot.root == str(repo_builder.path().resolve())
    assert snapshot.paths == ("README.md", "src/components/Button.tsx", "src/lib/api.ts")
    button = snapshot.get("src/components/Button.tsx")
    assert button is not None
    assert button.language == "TypeScript React"
    assert button.is_parseable
    expected_hash = sha256((repo_builder.path() / "src/lib/api.ts").read_bytes()).hexdigest()
    assert snapshot.get("src/lib/api.ts").hash == expected_hash


def test_index_excludes_declaration_files_from_parsing(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"src/env.d.ts": "declare const x: string;\n", "src/a.ts": "export {};\n"})

    snapshot = repo_builder.index()

    assert "src/env.d.ts" in snapshot
    assert [source.path for source in snapshot.parseable()] == ["src/a.ts"]


def test_index_respects_gitignore_and_exclusions(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            ".gitignore": "generated/\n*.log\n",
            "generated/out.ts": "export {};\n",
            "debug.log": "noise\n",
            "legacy/old.ts": "export {};\n",
            "src/main.ts": "export {};\n",
        }
    )

    snapshot = SourceIndexer().index(repo_builder.path(), exclude=["legacy/"])

    assert "src/main.ts" in snapshot
    assert "generated/out.ts" not in snapshot
    assert "debug.log" not in snapshot
    assert "legacy/old.ts" not in snapshot


def test_index_skips_output_directory_inside_root(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {"src/main.ts": "export {};\n", "docs/generated/README.md": "# Old output\n"}
    )
    root = repo_builder.path()

    snapshot = SourceIndexer().index(root, output_dir=root / "docs" / "generated")

    assert snapshot.paths == ("src/main.ts",)


def test_index_keeps_undecodable_files_without_text(repo_builder: RepoBuilder) -> None:
    repo_builder.write_bytes("src/broken.ts", b"export const x = '\xff\xfe';\n")

    snapshot = repo_builder.index()

    broken = snapshot.get("src/broken.ts")
    assert broken is not None
    assert broken.text is None


def test_fingerprint_tracks_content(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"src/a.ts": "export const a = 1;\n"})
    first = repo_builder.index().fingerprint
    assert repo_builder.index().fingerprint == first

    repo_builder.write({"src/a.ts": "export const a = 2;\n"})
    assert repo_builder.index().fingerprint != first


def test_index_rejects_missing_directory(tmp_path: Path) -> None:
    missing = tmp_path / "missing"
    with pytest.raises(FileNotFoundError) as excinfo:
        SourceIndexer().index(missing)
    assert str(missing) in str(excinfo.value)


def test_language_and_directory_summaries(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "src/components/Card.tsx": "export {};\n",
            "src/components/List.tsx": "export {};\n",
            "src/hooks/useData.ts": "export {};\n",
            "styles.css": "body {}\n",
        }
    )
    snapshot = repo_builder.index()

    shares = language_breakdown(snapshot)
    assert shares[0].language == "TypeScript React"
    assert shares[0].files == 2
    assert sum(share.files for share in shares) == 4

    summaries = {summary.path: summary for summary in directory_summaries(snapshot)}
    assert summaries["src"].subdirectories == 2
    assert summaries["src/components"].files == 2
    assert summaries["src/hooks"].files == 1
