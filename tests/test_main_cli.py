import pytest
from click.testing import CliRunner
from unittest.mock import patch, MagicMock, AsyncMock

from main import generate as generate_cli_command # Renaming to avoid clash if pytest runs it directly
from tender_generator.models.tender_models import (
    GenerationResult, GenerationState, TenderDocument, TenderSection,
)
from tender_generator.utils.config_loader import GeneratorSettings
from tender_generator.utils.exceptions import ConfigurationError

# Fixture to set a dummy OPENAI_API_KEY for CLI tests,
# so the CLI doesn't fail early on API key checks.
@pytest.fixture(autouse=True)
def set_dummy_openai_api_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "dummy_key_for_cli_test")

@pytest.fixture(autouse=True)
def default_settings():
    with patch('main.load_settings', return_value=GeneratorSettings()) as mocked:
        yield mocked

@pytest.fixture
def runner():
    return CliRunner()

@pytest.fixture
def sources_dir(tmp_path):
    directory = tmp_path / "sources"
    directory.mkdir()
    (directory / "rfp.md").write_text("The supplier must provide support.")
    return directory

@pytest.fixture
def successful_result():
    tender = TenderDocument(
        id="t-1",
        title="CLI Tender",
        sections=[TenderSection(id="s-1", title="Overview", content="Mocked section body", status="approved")],
    )
    return GenerationResult(success=True, tender=tender, message="done", state=GenerationState.COMPLETED)

@pytest.fixture
def mock_orchestrator_instance(successful_result):
    mock_instance = MagicMock()
    mock_instance.generate = AsyncMock(return_value=successful_result)
    return mock_instance

@patch('main.LocalDocumentStore')
@patch('main.PydanticAITextClient')
@patch('main.TenderOrchestrator')
def test_cli_generate_successful_output_to_file(
    MockedOrchestrator, MockedClient, MockedStore, mock_orchestrator_instance, runner, sources_dir, tmp_path
):
    MockedOrchestrator.return_value = mock_orchestrator_instance
    output_file = tmp_path / "out" / "tender.md"

    result = runner.invoke(
        generate_cli_command,
        ['--sources-dir', str(sources_dir), '--title', 'CLI Tender', '--output-file', str(output_file),
         '--prompt', 'Keep it short', '-i', '3']
    )

    assert result.exit_code == 0, f"CLI Error: {result.output}"
    assert "Initializing Tender Generator CLI..." in result.output
    assert f"Using source documents from: {sources_dir}" in result.output
    assert f"Tender successfully generated and saved to {output_file}" in result.output

    MockedClient.assert_called_once_with(model_name="openai:gpt-3.5-turbo", api_key="dummy_key_for_cli_test", stream=False)
    MockedStore.assert_called_once_with(str(sources_dir), None)
    options = mock_orchestrator_instance.generate.call_args.args[0]
    assert options.title == "CLI Tender"
    assert options.prompt == "Keep it short"
    assert options.max_iterations == 3

    written = output_file.read_text()
    assert written.startswith("# CLI Tender")
    assert "Mocked section body" in written

@patch('main.LocalDocumentStore')
@patch('main.PydanticAITextClient')
@patch('main.TenderOrchestrator')
def test_cli_generate_successful_output_to_console(
    MockedOrchestrator, MockedClient, MockedStore, mock_orchestrator_instance, runner, sources_dir, tmp_path
):
    MockedOrchestrator.return_value = mock_orchestrator_instance
    company_dir = tmp_path / "company"
    company_dir.mkdir()

    result = runner.invoke(
        generate_cli_command,
        ['--sources-dir', str(sources_dir), '--company-dir', str(company_dir), '--title', 'CLI Tender', '--stream']
    )

    assert result.exit_code == 0, f"CLI Error: {result.output}"
    assert "--- GENERATED TENDER ---" in result.output
    assert "Mocked section body" in result.output
    assert "--- END OF TENDER ---" in result.output
    MockedStore.assert_called_once_with(str(sources_dir), str(company_dir))
    assert MockedClient.call_args.kwargs["stream"] is True
    options = mock_orchestrator_instance.generate.call_args.args[0]
    assert options.max_iterations == 2

def test_cli_missing_sources_dir(runner):
    result = runner.invoke(generate_cli_command, ['--title', 'Something'])
    assert result.exit_code != 0
    assert "Missing option '--sources-dir'" in result.output

def test_cli_missing_title(runner, sources_dir):
    result = runner.invoke(generate_cli_command, ['--sources-dir', str(sources_dir)])
    assert result.exit_code != 0
    assert "Missing option '--title'" in result.output

def test_cli_sources_dir_not_exists(runner):
    result = runner.invoke(generate_cli_command, ['--sources-dir', 'no_such_directory', '--title', 'T'])
    assert result.exit_code != 0
    assert "does not exist" in result.output

@patch('main.TenderOrchestrator')
def test_cli_missing_api_key(MockedOrchestrator, runner, sources_dir, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    result = runner.invoke(generate_cli_command, ['--sources-dir', str(sources_dir), '--title', 'T'])

    assert "Error: API key not found." in result.output
    assert "OPENAI_API_KEY" in result.output
    MockedOrchestrator.assert_not_called()

@patch('main.LocalDocumentStore')
@patch('main.PydanticAITextClient')
@patch('main.TenderOrchestrator')
def test_cli_custom_api_key_and_model(
    MockedOrchestrator, MockedClient, MockedStore, mock_orchestrator_instance, runner, sources_dir, monkeypatch
):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    MockedOrchestrator.return_value = mock_orchestrator_instance

    result = runner.invoke(
        generate_cli_command,
        ['--sources-dir', str(sources_dir), '--title', 'T', '--api-key', 'cli_provided_key',
         '--model', 'anthropic:claude-test']
    )

    assert result.exit_code == 0, f"CLI Error: {result.output}"
    MockedClient.assert_called_once_with(model_name="anthropic:claude-test", api_key="cli_provided_key", stream=False)

@patch('main.LocalDocumentStore')
@patch('main.PydanticAITextClient')
@patch('main.TenderOrchestrator')
def test_cli_failed_result_exits_non_zero(
    MockedOrchestrator, MockedClient, MockedStore, mock_orchestrator_instance, runner, sources_dir
):
    mock_orchestrator_instance.generate.return_value = GenerationResult(
        success=False, error="NoSourceDocumentsError", message="No source documents found.",
        state=GenerationState.FAILED,
    )
    MockedOrchestrator.return_value = mock_orchestrator_instance

    result = runner.invoke(generate_cli_command, ['--sources-dir', str(sources_dir), '--title', 'T'])

    assert result.exit_code == 1
    assert "Tender Generation Error: NoSourceDocumentsError - No source documents found." in result.output

def test_cli_configuration_error(default_settings, runner, sources_dir):
    default_settings.side_effect = ConfigurationError("TENDER_CHUNK_SIZE must be positive")

    result = runner.invoke(generate_cli_command, ['--sources-dir', str(sources_dir), '--title', 'T'])

    assert result.exit_code == 1
    assert "Configuration Error: TENDER_CHUNK_SIZE must be positive" in result.output

@patch('main.LocalDocumentStore')
@patch('main.PydanticAITextClient')
@patch('main.TenderOrchestrator')
def test_cli_generic_exception_handling(
    MockedOrchestrator, MockedClient, MockedStore, mock_orchestrator_instance, runner, sources_dir
):
    mock_orchestrator_instance.generate.side_effect = Exception("Simulated generic error")
    MockedOrchestrator.return_value = mock_orchestrator_instance

    result = runner.invoke(generate_cli_command, ['--sources-dir', str(sources_dir), '--title', 'T'])

    assert result.exit_code == 1
    assert "An unexpected error occurred: Exception - Simulated generic error" in result.output
