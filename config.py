import os

from dotenv import load_dotenv

load_dotenv()


def env_flag(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    # Server
    PORT = int(os.environ.get('PORT', 5000))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

    # Use environment variable for database URL in production, fall back to a local SQLite file
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///treksafe.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Tourist registration
    TOURIST_ID_ATTEMPTS = int(os.environ.get('TOURIST_ID_ATTEMPTS', 5))
    ENFORCE_TOURIST_REFERENCES = env_flag('ENFORCE_TOURIST_REFERENCES', True)

    # Chat relay (OpenAI-compatible chat completions endpoint)
    OPENAI_API_KEY = os.environ.get('OPENAI_API_KEY')
    OPENAI_API_URL = os.environ.get('OPENAI_API_URL', 'https://api.openai.com/v1/chat/completions')
    OPENAI_MODEL = os.environ.get('OPENAI_MODEL', 'gpt-4o-mini')
    CHAT_TIMEOUT = float(os.environ.get('CHAT_TIMEOUT', 30))
