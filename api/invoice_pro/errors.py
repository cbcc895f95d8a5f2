# api/invoice_pro/errors.py


class ConfigurationError(ValueError):
    """
    Raised when a fee policy, reminder ladder, currency code or recurrence
    frequency is invalid. Never silently corrected.
    """
