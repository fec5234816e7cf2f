from .tenancy import Factory
from .auth import User, SessionToken, PasswordResetRequest
from .forms import Form, FormAccess, FormResponse, FormEntry
from .security import SecurityEvent

__all__ = [
    'Factory',
    'User', 'SessionToken', 'PasswordResetRequest',
    'Form', 'FormAccess', 'FormResponse', 'FormEntry',
    'SecurityEvent',
]
