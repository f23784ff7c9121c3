import asyncio
import logging
import os
import click
import sys # For sys.exit
from dotenv import load_dotenv

from tender_generator.agents.formatting_agent import FormattingAgent
from tender_generator.clients.pydantic_ai_client import PROVIDER_KEY_VARS, PydanticAITextClient
from tender_generator.models.tender_models import GenerationOptions
from tender_generator.orchestrator import TenderOrchestrator
from tender_generator.storage.local_store import LocalDocumentStore
from tender_generator.utils.config_loader import load_settings
from tender_generator.utils.exceptions import ConcurrentRunError, ConfigurationError


if not load_dotenv():
    logging.getLogger(__name__).debug(".env file not found or empty; relying on the process environment.")


def _key_variable(model: str) -> str:
    provider = model.split(":", 1)[0] if ":" in model else "openai"
    return PROVIDER_KEY_VARS.get(provider, "OPENAI_API_KEY")


@click.command()
@click.option(
    '--sources-dir', '-s',
    required=True,
    type=click.Path(exists=True, file_okay=False, readable=True),
    help="Directory holding the tender/RFP documents (PDF, Markdown or text)."
)
@click.option(
    '--company-dir', '-c',
    type=click.Path(exists=True, file_okay=False, readable=True),
    default=None,
    help="Directory holding company profile and capability documents."
)
@click.option('--title', '-t', required=True, type=str, help="Title of the tender response.")
@click.option('--prompt', '-p', type=str, default=None, help="Additional instructions for the planner.")
@click.option('--company-context', type=str, default=None, help="Free text describing the company.")
@click.option('--additional-context', type=str, default=None, help="Any other context for the drafter.")
@click.option(
    '--max-iterations', '-i',
    type=click.IntRange(min=1),
    default=None,
    help="Drafts allowed per section, including the first. Defaults to TENDER_MAX_ITERATIONS or 2."
)
@click.option(
    '--output-file', '-o',
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Path to save the generated Markdown tender. If not provided, prints to console."
)
@click.option(
    '--api-key', '-k',
    type=str,
    default=None,
    help="Provider API key. If not provided, uses the provider's key from .env or environment."
)
@click.option(
    '--model', '-m',
    type=str,
    default=None,
    help="The LLM model to use (e.g., 'openai:gpt-3.5-turbo'). Defaults to TENDER_MODEL."
)
@click.option('--stream', is_flag=True, default=False, help="Stream model output while generating.")
@click.option('--verbose', '-v', is_flag=True, default=False, help="Enable debug logging.")
def generate(sources_dir: str, company_dir: str, title: str, prompt: str, company_context: str,
             additional_context: str, max_iterations: int, output_file: str, api_key: str, model: str,
             stream: bool, verbose: bool):
    """
    Generates a tender response from a directory of tender documents and, optionally, company documents.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    click.echo("Initializing Tender Generator CLI...")

    try:
        settings = load_settings()
    except ConfigurationError as ce:
        click.secho(f"Configuration Error: {ce}", fg="red")
        sys.exit(1)

    model = model or settings.model_name
    key_var = _key_variable(model)
    effective_api_key = api_key if api_key else os.getenv(key_var)

    if not effective_api_key:
        click.secho(f"Error: API key not found. "
                    f"Please provide it via --api-key option, or set {key_var} in your .env file.",
                    fg="red")
        return

    try:
        click.echo(f"Using source documents from: {sources_dir}")
        if company_dir:
            click.echo(f"Using company documents from: {company_dir}")
        click.echo(f"Using LLM model: {model}")
        if output_file:
            click.echo(f"Output will be saved to: {output_file}")

        llm_client = PydanticAITextClient(model_name=model, api_key=effective_api_key, stream=stream)
        store = LocalDocumentStore(sources_dir, company_dir)
        orchestrator = TenderOrchestrator(document_store=store, llm_client=llm_client, settings=settings)

        options = GenerationOptions(
            title=title,
            prompt=prompt,
            company_context=company_context,
            additional_context=additional_context,
            max_iterations=max_iterations or settings.max_iterations,
            on_progress=lambda message: click.echo(f"  {message}"),
        )

        click.echo("Generating tender... This may take a few moments.")
        result = asyncio.run(orchestrator.generate(options))

        if not result.success:
            click.secho(f"Tender Generation Error: {result.error} - {result.message}", fg="red")
            sys.exit(1)

        markdown_tender = FormattingAgent().format_tender_to_markdown(result.tender)
        stats = result.stats
        click.echo(f"Completed in {stats.total_time_ms} ms; agent calls: {stats.agent_calls}")

        if output_file:
            # Ensure the output directory exists
            output_dir = os.path.dirname(output_file)
            if output_dir and not os.path.exists(output_dir):
                os.makedirs(output_dir)
                click.echo(f"Created output directory: {output_dir}")

            with open(output_file, "w", encoding="utf-8") as f:
                f.write(markdown_tender)
            click.secho(f"Tender successfully generated and saved to {output_file}", fg="green")
        else:
            click.secho("\n--- GENERATED TENDER ---", fg="blue", bold=True)
            click.echo(markdown_tender)
            click.secho("\n--- END OF TENDER ---", fg="blue", bold=True)
            click.echo("Tender generated. To save to a file, use the --output-file option.")

    except ConcurrentRunError as cre:
        click.secho(f"Error: {cre}", fg="red")
        sys.exit(1)
    except ValueError as ve:
        click.secho(f"Input Error: {ve}", fg="red")
        sys.exit(1)
    except FileNotFoundError as fnfe:
        click.secho(f"Error: File not found - {fnfe}", fg="red")
        sys.exit(1)
    except Exception as e: # Catch-all for any other unexpected errors
        click.secho(f"An unexpected error occurred: {e.__class__.__name__} - {e}", fg="red")
        sys.exit(1)

if __name__ == '__main__':
    generate()
