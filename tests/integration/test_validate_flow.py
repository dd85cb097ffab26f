"""Integration tests covering generate followed by validate."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from archdoc.cli import main
from archdoc.orchestrator import Orchestrator
from archdoc.validators import CoverageStatus, ValidationError
from tests._fixtures.repo_builder import RepoBuilder
from tests._fixtures.sample_app import SAMPLE_APP


def test_generated_documentation_passes_validation(
    repo_builder: RepoBuilder,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    repo_builder.write(SAMPLE_APP)
    output = tmp_path / "docs"
    monkeypatch.chdir(tmp_path)

    main(["generate", "--root", str(repo_builder.path()), "--output", str(output)])
    main(["validate", "--docs", str(output)])

    assert "Documentation is complete" in capsys.readouterr().out
    payload = json.loads((output / "validation-report.json").read_text(encoding="utf-8"))
    assert payload["passed"] is True
    assert payload["summary"]["broken_links"] == 0
    assert payload["summary"]["missing_documents"] == 0
    assert payload["summary"]["missing_requirements"] == 0
    assert payload["summary"]["anchor_warnings"] == 0
    assert payload["summary"]["total_requirements"] == 6


def test_breaking_one_link_fails_validation(
    repo_builder: RepoBuilder, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    repo_builder.write(SAMPLE_APP)
    output = tmp_path / "docs"
    monkeypatch.chdir(tmp_path)
    orchestrator = Orchestrator()
    orchestrator.run_generate(repo_builder.path(), output=output)

    (output / "hooks.md").unlink()
    report_path = tmp_path / "report.json"

    with pytest.raises(ValidationError) as excinfo:
        orchestrator.run_validate(output, report=report_path)

    report = excinfo.value.report
    assert report.missing_documents == ["hooks.md"]
    assert report.broken_links
    assert all(issue.target.startswith("hooks.md") for issue in report.broken_links)
    assert json.loads(report_path.read_text(encoding="utf-8"))["passed"] is False


def test_custom_requirements_file(
    repo_builder: RepoBuilder, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    repo_builder.write(SAMPLE_APP)
    output = tmp_path / "docs"
    monkeypatch.chdir(tmp_path)
    orchestrator = Orchestrator()
    orchestrator.run_generate(repo_builder.path(), output=output)
    requirements = tmp_path / "requirements.yml"
    requirements.write_text(
        "requirements:\n"
        "  - id: hooks\n"
        "    description: Hooks are documented\n"
        "    keywords: [hook, useUsers]\n"
        "  - id: deploy\n"
        "    description: Deployment is documented\n"
        "    keywords: [kubernetes, helm]\n",
        encoding="utf-8",
    )

    with pytest.raises(ValidationError) as excinfo:
        orchestrator.run_validate(output, requirements=requirements)

    statuses = {item.id: item.status for item in excinfo.value.report.requirements}
    assert statuses["deploy"] is CoverageStatus.MISSING
    assert statuses["hooks"] is not CoverageStatus.MISSING
    assert (output / "validation-report.json").is_file()


def test_linked_doc_comments_stay_plain_text(
    repo_builder: RepoBuilder, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    repo_builder.write(SAMPLE_APP)
    repo_builder.write(
        {
            "src/hooks/useUser.ts": """
            /** Loads the user. See [guide](./GUIDE.md) for details. */
            export function useUser(id: string): { id: string } {
              return { id };
            }
            """,
            "src/types/settings.ts": """
            export interface Settings {
              /** Format follows [RFC 5322](../rfc.md). */
              email: string;
            }
            """,
        }
    )
    output = tmp_path / "docs"
    monkeypatch.chdir(tmp_path)
    orchestrator = Orchestrator()
    orchestrator.run_generate(repo_builder.path(), output=output)

    report = orchestrator.run_validate(output)

    assert report.broken_links == []
    hooks = (output / "hooks.md").read_text(encoding="utf-8")
    assert "> Loads the user. See \\[guide\\](./GUIDE.md) for details." in hooks
    types = (output / "types.md").read_text(encoding="utf-8")
    assert "Format follows \\[RFC 5322\\](../rfc.md)." in types
