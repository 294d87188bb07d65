"""Identity service: registration, login, OTP and refresh-token sessions."""
