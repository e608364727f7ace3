"""HandsOff host application — configuration, logging, camera, audio and display.

Everything here adapts the on-device core (``core/``) to a desktop: OpenCV
capture and window, sounddevice playback, pydantic settings, loguru logging.
"""
