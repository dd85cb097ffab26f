"""Tests for dependency graph construction and import resolution."""

from __future__ import annotations

import pytest

from archdoc.analyzers.graph import (
    DanglingEdgeError,
    DependencyGraphBuilder,
    ImportResolver,
    ResolutionError,
    categorize,
    check_integrity,
)
from archdoc.models import (
    ComponentEntity,
    DependencyEdge,
    DependencyGraph,
    DependencyNode,
    EntityKind,
    InterfaceEntity,
    NodeCategory,
    SourceLocation,
    StatefulFunctionEntity,
    entity_id,
)
from tests._fixtures.repo_builder import RepoBuilder

ALIASES = {"@/": "src/"}


def _write_app(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "src/types/user.ts": """
            export interface User {
              id: string;
            }
            """,
            "src/types/index.ts": """
            export * from "./user";
            """,
            "src/hooks/useUser.ts": """
            import type { User } from "../types";

            export function useUser(): User {
              return { id: "1" };
            }
            """,
            "src/components/Profile.tsx": """
            import { useState } from "react";
            import { useUser } from "@/hooks/useUser";

            export function Profile() {
              const user = useUser();
              return <div>{user.id}</div>;
            }
            """,
            "src/lib/format.ts": """
            export const format = (value: string) => value.trim();
            """,
        }
    )


def test_categorize_uses_directory_and_name_precedence() -> None:
    def located(factory, path: str, name: str):
        return factory(
            id=entity_id(path, name),
            name=name,
            exported=True,
            location=SourceLocation(path=path, line=1),
        )

    assert categorize(located(ComponentEntity, "src/components/useless/Card.tsx", "Card")) is (
        NodeCategory.COMPONENT
    )
    assert categorize(located(StatefulFunctionEntity, "src/lib/useAuth.ts", "useAuth")) is (
        NodeCategory.STATEFUL_FUNCTION
    )
    assert categorize(located(InterfaceEntity, "src/lib/options.ts", "Options")) is (
        NodeCategory.UTILITY
    )
    assert categorize(located(InterfaceEntity, "src/services/client.ts", "Client")) is (
        NodeCategory.SERVICE
    )
    assert categorize(located(InterfaceEntity, "src/types/user.ts", "User")) is NodeCategory.TYPE
    assert categorize(located(InterfaceEntity, "src/userTypes.ts", "Shared")) is (
        NodeCategory.TYPE
    )
    assert categorize(located(ComponentEntity, "src/app/page.tsx", "Page")) is (
        NodeCategory.COMPONENT
    )
    assert categorize(located(InterfaceEntity, "src/config.ts", "Config")) is NodeCategory.UTILITY


def test_import_resolver_candidates(repo_builder: RepoBuilder) -> None:
    _write_app(repo_builder)
    resolver = ImportResolver(repo_builder.index(), ALIASES)

    assert resolver.resolve("src/hooks/useUser.ts", "../types") == "src/types/index.ts"
    assert resolver.resolve("src/hooks/useUser.ts", "../types/user") == "src/types/user.ts"
    assert resolver.resolve("src/hooks/useUser.ts", "../lib/format.js") == "src/lib/format.ts"
    assert resolver.resolve("src/components/Profile.tsx", "@/hooks/useUser") == (
        "src/hooks/useUser.ts"
    )
    assert resolver.resolve("src/hooks/useUser.ts", "../../../outside") is None
    assert resolver.resolve("src/hooks/useUser.ts", "./missing") is None
    assert resolver.is_internal("./x")
    assert resolver.is_internal("@/lib/format")
    assert not resolver.is_internal("react")


def test_graph_edges_follow_imports_and_reexports(repo_builder: RepoBuilder) -> None:
    _write_app(repo_builder)
    model = repo_builder.model()

    result = DependencyGraphBuilder(ALIASES).build(model)
    graph = result.graph

    assert result.unresolved == ()
    assert [node.id for node in graph.nodes] == [entity.id for entity in model.entities]
    edges = {(edge.source, edge.target) for edge in graph.edges}
    assert edges == {
        ("src/components/Profile.tsx#Profile", "src/hooks/useUser.ts#useUser"),
        ("src/hooks/useUser.ts#useUser", "src/types/user.ts#User"),
    }
    assert graph.node("src/hooks/useUser.ts#useUser").category is NodeCategory.STATEFUL_FUNCTION
    assert graph.imported_files("src/hooks/useUser.ts") == ("src/types/index.ts",)
    assert graph.dangling_edges() == []


def test_unresolved_internal_imports_are_reported(repo_builder: RepoBuilder) -> None:
    _write_app(repo_builder)
    repo_builder.write(
        {
            "src/components/Broken.tsx": """
            import { Missing } from "./Missing";
            import lodash from "lodash";

            export const Broken = () => <Missing />;
            """
        }
    )

    result = DependencyGraphBuilder(ALIASES).build(repo_builder.model())

    assert [(item.path, item.specifier, item.line) for item in result.unresolved] == [
        ("src/components/Broken.tsx", "./Missing", 1)
    ]
    assert result.diagnostics[0].message == "Unresolved import './Missing'"
    with pytest.raises(ResolutionError) as excinfo:
        result.raise_for_unresolved()
    assert excinfo.value.unresolved == list(result.unresolved)


def test_edges_to_unknown_ids_are_reported_as_dangling() -> None:
    node = DependencyNode(
        id="src/a.ts#A",
        name="A",
        path="src/a.ts",
        kind=EntityKind.INTERFACE,
        category=NodeCategory.TYPE,
    )
    foreign = DependencyEdge(source="src/a.ts#A", target="src/gone.ts#Gone")
    internal = DependencyEdge(source="src/a.ts#A", target="src/a.ts#A")
    graph = DependencyGraph(nodes=(node,), edges=(internal, foreign))

    assert graph.dangling_edges() == [foreign]
    with pytest.raises(DanglingEdgeError, match="src/a.ts#A -> src/gone.ts#Gone"):
        check_integrity(graph)

    check_integrity(DependencyGraph(nodes=(node,), edges=()))
