"""Error taxonomy for the smile camera."""


class SmileCamError(Exception):
    pass


class ConfigError(SmileCamError):
    pass


class CameraError(SmileCamError):
    """Camera could not be acquired. Terminal for the session."""

    status_message = "Error: Could not access camera."


class PermissionDenied(CameraError):
    status_message = "Error: Could not access camera. Please check permissions."


class DeviceUnavailable(CameraError):
    status_message = "Error: No camera available."


class InvalidLandmarks(SmileCamError):
    """A landmark set is missing a point the classifier needs."""

    def __init__(self, index: int, size: int) -> None:
        super().__init__(f"landmark {index} missing from set of {size} points")
        self.index = index
        self.size = size


class LandmarkSourceError(SmileCamError):
    pass
