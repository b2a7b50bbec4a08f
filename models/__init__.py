from .db import db
from .user import User
from .package import Package
from .booking import Booking
from .payment import Payment
from .audit_log import AuditLog
from .email_log import EmailLog
from .password_reset_otp import PasswordResetOtp
from .session import Session
