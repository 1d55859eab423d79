from ninja_extra.throttling import AnonRateThrottle, UserRateThrottle


class AuthThrottle(AnonRateThrottle):
    rate = "20/min"


class AnonDefaultThrottle(AnonRateThrottle):
    rate = "60/min"


class UserDefaultThrottle(UserRateThrottle):
    rate = "100/min"


class WriteThrottle(UserRateThrottle):
    rate = "100/min"


class PasswordAttemptThrottle(UserRateThrottle):
    rate = "10/min"


class ScannerThrottle(UserRateThrottle):
    """Door scanners fire in bursts when the queue at the entrance is long."""

    rate = "600/min"
