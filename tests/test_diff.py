import pytest

from agent_convert.diff import body_similarity, capability_label, diff_specs, max_severity
from agent_convert.models import ComponentSpec, Execution, Intent


@pytest.fixture
def spec():
    return ComponentSpec(
        id="review",
        component_type="skill",
        intent=Intent(summary="Review code", purpose="Review code for bugs"),
        execution=Execution(context="fork", allowed_tools=["Read", "Grep"]),
        body="Analyze the diff and report issues with suggested fixes.",
    )


def replace(spec, **changes):
    return spec.model_copy(update=changes)


def test_identical_specs(spec):
    result = diff_specs(spec, spec)
    assert result.identical
    assert result.overall_severity == "identical"
    assert result.summary == "Components are semantically identical."
    assert "tool restrictions" in result.preserved_aspects
    assert "body content" in result.preserved_aspects


def test_tool_order_does_not_matter(spec):
    other = replace(spec, execution=Execution(context="fork", allowed_tools=["Grep", "Read"]))
    assert diff_specs(spec, other).identical


def test_execution_context_change(spec):
    other = replace(spec, execution=Execution(context="main", allowed_tools=["Read", "Grep"]))
    result = diff_specs(spec, other)
    assert result.overall_severity == "significant"
    assert [d.path for d in result.field_diffs] == ["execution.context"]
    assert result.changed_aspects == ["execution context"]
    assert result.summary.startswith("Changed: execution context. Preserved: identity")


def test_dropped_tool_restrictions(spec):
    result = diff_specs(spec, replace(spec, execution=Execution(context="fork")))
    (tools,) = result.field_diffs
    assert tools.path == "execution.allowed_tools"
    assert tools.old_value == ["Grep", "Read"]
    assert tools.new_value == "unrestricted"
    assert tools.severity == "significant"


def test_added_tool_restrictions_are_moderate(spec):
    unrestricted = replace(spec, execution=Execution(context="fork"))
    result = diff_specs(unrestricted, spec)
    assert result.field_diffs[0].severity == "moderate"


def test_body_whitespace_change_is_minor(spec):
    other = replace(spec, body=spec.body.replace(" ", "  "))
    result = diff_specs(spec, other)
    assert result.overall_severity == "minor"
    assert result.field_diffs[0].description == "Body content 95% similar"


def test_rewritten_body_is_significant(spec):
    result = diff_specs(spec, replace(spec, body="Deploy to production."))
    body = result.field_diffs[0]
    assert body.path == "body"
    assert body.severity == "significant"
    assert "body content" in result.changed_aspects


def test_capability_changes(spec):
    other = replace(
        spec, capabilities=spec.capabilities.model_copy(update={"needs_shell": True})
    )
    result = diff_specs(spec, other)
    (flag,) = result.field_diffs
    assert flag.label == "Needs shell"
    assert flag.description == "Needs shell: False -> True"
    assert result.changed_aspects == ["capabilities"]


def test_type_and_activation_changes(spec):
    other = replace(
        spec,
        component_type="workflow",
        activation=spec.activation.model_copy(update={"mode": "manual"}),
    )
    result = diff_specs(spec, other)
    assert [d.path for d in result.field_diffs] == ["component_type", "activation.mode"]
    assert result.field_diffs[0].description == "Type changed from skill to workflow"


def test_body_similarity():
    assert body_similarity("a b", "a b") == 1.0
    assert body_similarity("a b", "a  b\n") == 0.95
    assert body_similarity("a b c", "a b d") == 0.5
    assert body_similarity("", "   ") == 0.95


def test_helpers():
    assert capability_label("needs_code_search") == "Needs code search"
    assert max_severity([]) == "identical"
    assert max_severity(["minor", "breaking", "moderate"]) == "breaking"
