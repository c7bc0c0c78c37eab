import json
import os


def env_flag(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def parse_storage(value):
    """``"oauth2.storage.memory"`` or ``"client_credentials=svc.a,access_token=svc.b"``."""
    if '=' not in value:
        return value.strip()

    storage = {}
    for pair in value.split(','):
        if not pair.strip():
            continue
        role, _, identifier = pair.partition('=')
        storage[role.strip()] = identifier.strip()
    return storage


def parse_grant_types(value):
    return {name.strip(): True for name in value.split(',') if name.strip()}


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY')

    FLASK_ENV = os.environ.get('FLASK_ENV', 'production')

    LOGGING_CONFIG = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'default': {
                'format': '[%(asctime)s] %(levelname)s in %(module)s: %(message)s',
            },
            'security': {
                'format': '[%(asctime)s] SECURITY - %(levelname)s: %(message)s',
            }
        },
        'handlers': {
            'wsgi': {
                'class': 'logging.StreamHandler',
                'stream': 'ext://flask.logging.wsgi_errors_stream',
                'formatter': 'default'
            },
            'security': {
                'class': 'logging.FileHandler',
                'filename': 'security.log',
                'formatter': 'security',
                'level': 'INFO'
            },
            'app': {
                'class': 'logging.FileHandler',
                'filename': 'app.log',
                'formatter': 'default',
                'level': 'WARNING'
            }
        },
        'root': {
            'level': 'INFO',
            'handlers': ['wsgi', 'app']
        },
        'loggers': {
            'security': {
                'level': 'INFO',
                'handlers': ['security'],
                'propagate': False
            }
        }
    }

    # Read by authlib when the server is attached to the app
    OAUTH2_REFRESH_TOKEN_GENERATOR = True
    OAUTH2_SCOPES_SUPPORTED = os.environ.get('OAUTH2_SCOPES_SUPPORTED', 'openid profile email').split()

    OAUTH2 = {
        'storage': parse_storage(os.environ.get('OAUTH2_STORAGE', 'oauth2.storage.memory')),
        'enforce_state': env_flag('OAUTH2_ENFORCE_STATE', True),
        'allow_implicit': env_flag('OAUTH2_ALLOW_IMPLICIT', False),
        'access_lifetime': int(os.environ.get('OAUTH2_ACCESS_LIFETIME', 3600)),
        'audience': os.environ.get('OAUTH2_AUDIENCE', ''),
        'grant_types': parse_grant_types(
            os.environ.get('OAUTH2_GRANT_TYPES', 'client_credentials,authorization_code,password,refresh_token')),
        'options': json.loads(os.environ.get('OAUTH2_OPTIONS') or '{}'),
    }

    if FLASK_ENV == 'development':
        DEBUG = True
        TESTING = False
    else:
        DEBUG = False
        TESTING = False
