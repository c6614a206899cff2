from .actuator import RecordingActuator, PyAutoGUIActuator

__all__ = ["RecordingActuator", "PyAutoGUIActuator"]
