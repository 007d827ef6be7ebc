"""Transit pass service: accounts, phone OTP, QR tickets and face-checked boarding."""

__version__ = "1.0.0"
