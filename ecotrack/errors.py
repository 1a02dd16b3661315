# ecotrack/errors.py
"""
Application errors. Each one knows the HTTP status it maps to and the message
shown to the caller; main.py turns them into ``{"message": ...}`` responses.
"""


class EcoTrackError(Exception):
    status_code = 500
    message = "Internal server error."

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message


# 400
class InvalidInput(EcoTrackError):
    status_code = 400
    message = "Invalid input."


class InvalidWasteType(InvalidInput):
    def __init__(self, waste_type=None):
        super().__init__(f"Invalid waste type: {waste_type}." if waste_type else "Valid waste type and amount are required.")
        self.waste_type = waste_type


class InvalidAmount(InvalidInput):
    message = "Waste amount must be a positive whole number."


class UserAlreadyExists(EcoTrackError):
    status_code = 400
    message = "User already exists"


class InsufficientPoints(EcoTrackError):
    status_code = 400
    message = "Insufficient points for this reward."

    def __init__(self, balance=None, required=None):
        super().__init__()
        self.balance = balance
        self.required = required


# 401
class InvalidCredentials(EcoTrackError):
    status_code = 401
    message = "Invalid credentials"


class Unauthenticated(EcoTrackError):
    status_code = 401
    message = "Access denied. No token provided."


class TokenExpired(Unauthenticated):
    message = "Token expired."


# 404
class NotFound(EcoTrackError):
    status_code = 404
    message = "Not found."


class UserNotFound(NotFound):
    message = "User not found."


class RewardNotFound(NotFound):
    message = "Reward not found."


# 500
class StorageFailure(EcoTrackError):
    status_code = 500
    message = "Internal server error."
