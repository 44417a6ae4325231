from .capture_mocks import FakeCaptureProcess, make_capture_factory

__all__ = ["FakeCaptureProcess", "make_capture_factory"]
