"""Global pytest configuration."""

import os

# Tests run against the in-memory store and without a provider credential
os.environ["DATABASE_URL"] = ""
os.environ["OPENAI_API_KEY"] = ""
