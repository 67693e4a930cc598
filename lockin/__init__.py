"""
Lock-in Amplifier Driver

Controls an SR830-class lock-in amplifier over RS-232 (or a VISA resource).

- Drivers: byte-level transports (serial, VISA)
- Controllers: device commands, readings and status
- Models: the auto-ranging protocol
"""

__version__ = "1.0.0"
