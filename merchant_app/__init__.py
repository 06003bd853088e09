import os

from dotenv import load_dotenv

# Load environment variables from .env file (never overrides the real environment)
load_dotenv(os.getenv("ENV_FILE", ".env"))
