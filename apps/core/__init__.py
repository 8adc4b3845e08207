"""
Core application for runtime error handling.

This app provides:
- Runtime error interception with escalation of severe errors
- Dedicated logging for serial port / Arduino errors
- Uncaught exception dispatch to the error presenter
"""
