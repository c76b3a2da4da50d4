from rich import print

from reloop.services.image_service import build_providers
from reloop.utils.config import config


def is_idea_provider_configured(provider: str) -> bool:
    if provider == "openai":
        key, name = config.openai_api_key, "OPENAI_API_KEY"
    elif provider == "gemini":
        key, name = config.google_ai_api_key, "GOOGLE_AI_API_KEY"
    else:
        print(f"[bold red]Unknown idea provider {provider}. Use openai or gemini.[/bold red]")
        return False

    if not key:
        print(f"Idea provider [bold red]{provider}[/bold red] has no API key. Please set the {name} environment variable.")
        return False
    return True


def is_store_available(database) -> bool:
    try:
        database.collection("submissions").count({})
        return True
    except Exception as e:
        print(f"[bold red]Document store is not reachable: {e}[/bold red]")
        return False


def configured_image_providers():
    return [provider.name for provider in build_providers(config) if provider.is_configured()]


# Checks whether all the required integrations are available or not
def pre_check(database) -> bool:
    if not is_idea_provider_configured(config.idea_provider):
        return False
    print(f"Idea provider [bold green]{config.idea_provider}[/bold green] is configured.")

    if not is_store_available(database):
        return False
    print(f"[bold green]{config.store_backend} store is available.[/bold green]")

    providers = configured_image_providers()
    if providers:
        print(f"Image providers: [bold green]{', '.join(providers)}[/bold green]")
    else:
        print("[bold yellow]No image provider is configured, placeholders will be used.[/bold yellow]")
    return True
