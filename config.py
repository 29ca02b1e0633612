import os, secrets
from typing import Any
from dotenv import load_dotenv

load_dotenv()

SESSION_COOKIE : str = 'auth_id'
REDIRECT_COOKIE : str = 'redirect_after_auth'
REDIRECT_COOKIE_MAX_AGE : int = 60 * 15
REGISTER_URL : str = '/register'


def load_config() -> dict[str, Any]:
    '''Read application settings from the environment (and .env, if present).'''
    return {
        'SQLALCHEMY_DATABASE_URI': os.getenv('DATABASE_URL', 'sqlite:///data.db'),
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SECRET_KEY': os.getenv('SECRET_KEY') or secrets.token_hex(16),
        'HOST': os.getenv('HOST', '0.0.0.0'),
        'PORT': int(os.getenv('PORT', '5000')),
        'LOG_LEVEL': os.getenv('LOG_LEVEL', 'INFO').upper(),
    }
