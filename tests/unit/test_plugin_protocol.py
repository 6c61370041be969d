"""Tests for the ToolPlugin protocol."""

from slsa_verify.plugin import ResultStatus, ToolParam, ToolPlugin, ToolResult
from slsa_verify.plugins import builtin_plugins


def test_tool_param_creation():
    """Test ToolParam creation."""
    param = ToolParam(
        name="log-index",
        description="Rekor log index",
        type="str",
        required=True,
        default="N/A",
        choices=["1", "2"],
        positional=True,
    )

    assert param.name == "log-index"
    assert param.description == "Rekor log index"
    assert param.type == "str"
    assert param.required is True
    assert param.default == "N/A"
    assert param.choices == ["1", "2"]
    assert param.positional is True
    assert param.key == "log_index"


def test_tool_param_defaults():
    """Test ToolParam default values."""
    param = ToolParam(name="test", description="Test parameter")

    assert param.type == "str"
    assert param.required is False
    assert param.default is None
    assert param.choices is None
    assert param.positional is False


def test_tool_result_creation():
    """Test ToolResult creation."""
    result = ToolResult(
        status=ResultStatus.SUCCESS,
        summary="Signature verification passed",
        data={"output": "123456789"},
        artifacts={"output": "/tmp/signature.json"},
    )

    assert result.status == ResultStatus.SUCCESS
    assert result.summary == "Signature verification passed"
    assert result.data == {"output": "123456789"}
    assert result.artifacts == {"output": "/tmp/signature.json"}


def test_tool_result_defaults():
    """Test ToolResult default values."""
    result = ToolResult(status=ResultStatus.SUCCESS, summary="Done")

    assert result.data == {}
    assert result.artifacts == {}


def test_plugin_protocol_compliance(mock_plugin):
    """Test that mock plugin implements ToolPlugin protocol."""
    assert isinstance(mock_plugin, ToolPlugin)
    assert callable(mock_plugin.get_params)
    assert callable(mock_plugin.run)


def test_builtin_plugins_implement_protocol():
    plugins = builtin_plugins()

    assert set(plugins) == {"signature", "provenance", "sbom", "rekor", "image"}
    for name, plugin in plugins.items():
        assert isinstance(plugin, ToolPlugin)
        assert plugin.name == name
        assert plugin.get_params()


def test_plugin_run(mock_plugin):
    """Test plugin execution."""
    from slsa_verify.context import ExecutionContext

    ctx = ExecutionContext()
    result = mock_plugin.run({"input": "test-value"}, ctx)

    assert result.status == ResultStatus.SUCCESS
    assert "test-value" in result.summary
    assert result.data["input"] == "test-value"
