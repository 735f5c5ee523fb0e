"""
Core surveillance engine: data model, settings, dispatcher, aggregation,
alert policy and the controller state machine.

Has no UI dependencies. A thin front end (see main.py) constructs one
SurveillanceController and receives updates via its callbacks.
"""
