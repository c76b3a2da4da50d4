import os
import yaml
from pathlib import Path
from dotenv import load_dotenv

DEFAULT_IMAGE_PROVIDERS = ["huggingface", "craiyon", "unsplash"]


class Config:
    def __init__(self):
        # Load appropriate .env file based on environment
        self.env = os.getenv("RELOOP_ENV", "dev")
        self._load_env_file()

        # Project paths
        self.project_root = Path(__file__).parent.parent.parent
        self.image_providers_file = Path(
            os.getenv("IMAGE_PROVIDERS_FILE", self.project_root / "image_providers.yaml")
        )

        # Storage settings
        self.store_backend = os.getenv("STORE_BACKEND", "mongodb")
        self.mongo_uri = os.getenv("MONGO_URI", "mongodb://localhost:27017")
        self.mongo_db_name = os.getenv("MONGO_DB_NAME", "reloop")

        # Idea generation settings
        self.idea_provider = os.getenv("IDEA_PROVIDER", "openai")
        self.openai_api_key = os.getenv("OPENAI_API_KEY")
        self.openai_model = os.getenv("OPENAI_MODEL", "gpt-4o")
        self.openai_base_url = os.getenv("OPENAI_BASE_URL")
        self.google_ai_api_key = os.getenv("GOOGLE_AI_API_KEY")
        self.google_ai_model = os.getenv("GOOGLE_AI_MODEL", "gemini-2.0-flash")
        self.ideas_per_submission = int(os.getenv("IDEAS_PER_SUBMISSION", 3))

        # Image generation settings
        self.huggingface_api_key = os.getenv("HUGGINGFACE_API_KEY")
        self.huggingface_model = os.getenv(
            "HUGGINGFACE_MODEL", "stabilityai/stable-diffusion-xl-base-1.0"
        )
        self.unsplash_access_key = os.getenv("UNSPLASH_ACCESS_KEY")
        self.image_max_retries = int(os.getenv("IMAGE_MAX_RETRIES", 2))
        self.image_retry_delay = float(os.getenv("IMAGE_RETRY_DELAY", 1))
        self.image_model_loading_wait = float(os.getenv("IMAGE_MODEL_LOADING_WAIT", 20))
        self.image_inter_idea_delay = float(os.getenv("IMAGE_INTER_IDEA_DELAY", 3))

        # Background jobs
        self.pipeline_workers = int(os.getenv("PIPELINE_WORKERS", 4))

        # Notification settings
        self.admin_email = os.getenv("ADMIN_EMAIL", "admin@localhost")
        self.notification_webhook_url = os.getenv("NOTIFICATION_WEBHOOK_URL")

        # Logging settings
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        self.log_format = os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

        # Load image provider order from YAML
        self.image_providers = self._load_image_providers()

    def _load_env_file(self):
        """Load the appropriate .env file based on the environment."""
        env_file = ".env"

        # Check for environment-specific .env file
        if self.env != "dev":
            env_specific_file = f".env.{self.env}"
            if Path(env_specific_file).exists():
                env_file = env_specific_file
                print(f"Loading environment from {env_file}")
            else:
                print(f"Warning: {env_specific_file} not found, falling back to .env")

        # Load the environment file
        load_dotenv(env_file)

    def _load_image_providers(self):
        """Load the ordered list of enabled image providers from YAML."""
        if not self.image_providers_file.exists():
            return list(DEFAULT_IMAGE_PROVIDERS)

        with open(self.image_providers_file, 'r') as file:
            providers_config = yaml.safe_load(file) or {}
            return [
                provider['name']
                for provider in providers_config.get('providers', [])
                if provider.get('enabled', True)
            ]

# Create a global config instance
config = Config()
