"""Well-known names shared by the session components."""

# storage slot holding the encrypted session envelope
SESSION_KEY = 'rentease_user_session'
SESSION_TTL = 24 * 60 * 60  # seconds

# request keys set by the session middleware
SESSION_STORE = 'rentease.session.store'
SESSION_QUERY = 'rentease.session.query'

# role codes issued by the backend
ADMIN_ROLE_CODE = 'A'
TENANT_ROLE_CODE = 'N'

# routes used by the page guards
LOGIN_PATH = '/login'
HOME_PATH = '/'
ADMIN_HOME_PATH = '/admin/dashboard/'
TENANT_HOME_PATH = '/dashboard/'

ENV_SECRET = 'RENTEASE_SESSION_SECRET'
ENV_STORAGE_KEY = 'RENTEASE_SESSION_STORAGE_KEY'
ENV_TTL = 'RENTEASE_SESSION_TTL'
ENV_CIPHER_BACKEND = 'RENTEASE_CIPHER_BACKEND'
