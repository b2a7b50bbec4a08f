from .auth import auth_bp
from .bookings import bookings_bp
from .packages import packages_bp
from .users import users_bp
from .audit_logs import audit_bp
from .dashboard import dashboard_bp
from .payments import payments_bp
from .pages import pages_bp
