"""Tests for diagram construction and Mermaid output."""

from __future__ import annotations

from archdoc.analyzers.graph import DependencyGraphBuilder
from archdoc.diagrams import DiagramBuilder, MermaidSerializer, sanitize_id
from archdoc.diagrams.builder import (
    CORE_DIAGRAMS,
    auth_flow,
    component_hierarchy,
    data_flow,
    dependency_graph,
    security_architecture,
    type_relationships,
)
from archdoc.models import Diagram, DiagramEdge, DiagramNode, DiagramShape, PatternMatch
from tests._fixtures.repo_builder import RepoBuilder


def _pattern(key: str, category: str = "security") -> PatternMatch:
    return PatternMatch(key=key, name=key.title(), category=category, confidence=0.8, files=())


def _write_components(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "src/components/App.tsx": """
            import { Header } from "./Header";

            export default function App() {
              return (
                <main>
                  <Header />
                </main>
              );
            }
            """,
            "src/components/Header.tsx": """
            export function Logo() {
              return <img />;
            }

            export function Header() {
              return <header><Logo /><Missing /></header>;
            }
            """,
            "src/types/user.ts": """
            export interface User {
              id: string;
            }

            export interface Admin extends User, Record<string, unknown> {
              level: number;
            }
            """,
        }
    )


def _labels(diagram: Diagram) -> dict:
    return {node.id: node.label for node in diagram.nodes}


def test_sanitize_id() -> None:
    assert sanitize_id("src/components/App.tsx#App") == "src_components_App_tsx_App"
    assert sanitize_id("1-up") == "n_1_up"
    assert sanitize_id("") == "node"


def test_component_hierarchy_starts_at_unrendered_roots(repo_builder: RepoBuilder) -> None:
    _write_components(repo_builder)
    model = repo_builder.model()
    graph = DependencyGraphBuilder().build(model).graph

    diagram = component_hierarchy(model, graph)

    labels = _labels(diagram)
    assert diagram.shape is DiagramShape.HIERARCHY
    assert [(labels[e.source], labels[e.target]) for e in diagram.edges] == [
        ("App", "Header"),
        ("Header", "Logo"),
    ]
    roots = [node.label for node in diagram.nodes if node.group == "root"]
    assert roots == ["App"]


def test_type_relationships_include_external_bases(repo_builder: RepoBuilder) -> None:
    _write_components(repo_builder)
    model = repo_builder.model()

    diagram = type_relationships(model)

    groups = {node.label: node.group for node in diagram.nodes}
    assert groups == {"User": "interface", "Admin": "interface", "Record": "external"}
    labels = _labels(diagram)
    assert {(labels[e.source], labels[e.target], e.label) for e in diagram.edges} == {
        ("Admin", "User", "extends"),
        ("Admin", "Record", "extends"),
    }


def test_dependency_graph_respects_node_limit(repo_builder: RepoBuilder) -> None:
    _write_components(repo_builder)
    model = repo_builder.model()
    graph = DependencyGraphBuilder().build(model).graph

    diagram = dependency_graph(graph, max_nodes=2)

    assert len(diagram.nodes) == 2
    ids = {node.id for node in diagram.nodes}
    assert all(edge.source in ids and edge.target in ids for edge in diagram.edges)


def test_linear_flows_follow_detected_patterns(repo_builder: RepoBuilder) -> None:
    _write_components(repo_builder)
    model = repo_builder.model()
    patterns = [_pattern("validation"), _pattern("authentication")]

    assert security_architecture(patterns).steps == (
        "User Input",
        "Input Validation",
        "Authentication",
        "Business Logic",
    )
    assert data_flow(model, []).steps == (
        "User Interaction",
        "React Component",
        "Business Logic",
        "Response",
        "UI Update",
    )
    assert data_flow(model, patterns).steps[2] == "Input Validation"
    assert auth_flow([]) is None
    assert auth_flow(patterns).steps[-1] == "Protected Resource"


def test_builder_emits_core_diagrams_in_fixed_order(repo_builder: RepoBuilder) -> None:
    _write_components(repo_builder)
    model = repo_builder.model()
    graph = DependencyGraphBuilder().build(model).graph

    without_auth = DiagramBuilder().build(model, graph, [])
    with_auth = DiagramBuilder().build(model, graph, [_pattern("authentication")])

    assert tuple(diagram.name for diagram in without_auth) == CORE_DIAGRAMS
    assert [diagram.name for diagram in with_auth][3] == "auth-flow"
    assert without_auth == DiagramBuilder().build(model, graph, [])


def test_mermaid_renders_linear_flow() -> None:
    diagram = Diagram(
        name="data-flow",
        title="Data Flow",
        shape=DiagramShape.LINEAR_FLOW,
        steps=("User", 'Say "hi"'),
    )

    assert MermaidSerializer().render(diagram) == (
        "---\n"
        "title: Data Flow\n"
        "---\n"
        "flowchart LR\n"
        '    step0["User"]\n'
        '    step1["Say #quot;hi#quot;"]\n'
        "    step0 --> step1\n"
    )


def test_mermaid_renders_graph_with_classes_and_theme() -> None:
    diagram = Diagram(
        name="dependency-graph",
        title="Dependency Graph",
        shape=DiagramShape.GRAPH,
        nodes=(
            DiagramNode(id="a", label="App", group="component", shape="round"),
            DiagramNode(id="b", label="useData", group="stateful-function", shape="stadium"),
        ),
        edges=(DiagramEdge("a", "b", "uses"),),
    )

    rendered = MermaidSerializer("LR", "forest").render(diagram).splitlines()

    assert rendered[3] == "%%{init: {'theme': 'forest'}}%%"
    assert rendered[4] == "graph LR"
    assert '    a("App")' in rendered
    assert '    b(["useData"])' in rendered
    assert "    a -->|uses| b" in rendered
    assert "    class b stateful_function" in rendered


def test_mermaid_renders_placeholder_for_empty_graph() -> None:
    diagram = Diagram(name="api-endpoints", title="API Endpoints", shape=DiagramShape.GRAPH)

    assert MermaidSerializer().render(diagram).splitlines()[-1] == (
        '    empty["No api endpoints detected"]'
    )
