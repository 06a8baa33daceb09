from fastapi import HTTPException, status


class AuthenticationError(HTTPException):
    """Exception raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=message,
            headers={"WWW-Authenticate": "Bearer"}
        )


class InvalidInputError(HTTPException):
    """Exception raised when request input fails validation."""

    def __init__(self, message: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=message
        )


class QuotaExceededError(HTTPException):
    """Exception raised when the caller has used up today's plan quota."""

    def __init__(self, used: int, limit: int, plan: str):
        self.used = used
        self.limit = limit
        self.plan = plan
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "Daily limit reached",
                "message": (
                    f"You have reached your daily limit of {limit} requests. "
                    "Upgrade your plan for more."
                ),
                "usage": {"used": used, "limit": limit, "plan": plan},
            }
        )


class ProviderUnavailableError(HTTPException):
    """Exception raised when the generation provider fails or cannot be reached."""

    def __init__(self, message: str = "Failed to generate response. Please try again."):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=message
        )


class ProviderBusyError(HTTPException):
    """Exception raised when the generation provider rate limits us."""

    def __init__(
        self,
        message: str = "AI service is temporarily busy. Please try again in a moment.",
        retry_after: int = 5
    ):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=message,
            headers={"Retry-After": str(retry_after)}
        )


class ProviderEmptyResultError(HTTPException):
    """Exception raised when the provider answers without any generated text."""

    def __init__(self, message: str = "No response generated. Please try again."):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=message
        )


class ConflictError(HTTPException):
    """Exception raised when a resource already exists."""

    def __init__(self, message: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=message
        )


class SignatureInvalidError(HTTPException):
    """Exception raised when a billing webhook fails signature verification."""

    def __init__(self, message: str = "Webhook signature verification failed"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=message
        )


class BillingProviderError(HTTPException):
    """Exception raised when a call to the billing provider fails."""

    def __init__(self, message: str = "Billing provider request failed"):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=message
        )
