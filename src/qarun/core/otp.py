"""One-time password helper for scenarios that pass a 2FA prompt."""

from __future__ import annotations

import pyotp

from qarun.core.exceptions import OTPError


class OneTimePassword:
    """TOTP codes for the configured shared secret (Config.otp_secret)."""

    def __init__(self, secret: str) -> None:
        if not secret:
            msg = "No OTP secret set (QARUN_OTP_SECRET)"
            raise OTPError(msg)
        self._totp = pyotp.TOTP(secret)

    def now(self) -> str:
        """Current code."""
        return self._totp.now()

    def verify(self, token: str) -> bool:
        """True only for the code of the current time window."""
        return self._totp.verify(token, valid_window=0)
