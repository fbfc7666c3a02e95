# Copyright (c) 2025 Preston Elder
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Constants for the garage door opener controller."""

# Distance the bottom edge of the door is off the ground when fully open.
DOOR_HEIGHT_FEET = 7.0833

# Full-travel times. The door opens slightly slower than it closes (gravity).
DOOR_OPEN_TIME_SEC = 16.75
DOOR_CLOSE_TIME_SEC = 15.75

# The opener only registers a press that is held for a moment.
PULSE_HOLD_TIME_SEC = 0.25
# Presses closer together than this are not guaranteed to register.
PULSE_SPACING_SEC = 0.75

# Maximum height at which a closing door reverses after touching the floor.
# Unmeasured; a non-positive value disables bounce-back handling.
BOUNCE_BACK_HEIGHT_FEET = -1.0
# Delay between reaching the floor and starting back up.
BOUNCE_BACK_DELAY_SEC = 0.5
# Height the door must rise past before it can be stopped after bouncing.
BOUNCE_BACK_CLEARANCE_FACTOR = 1.1

# Short enough to toggle the opener light without engaging the motor.
LIGHT_PULSE_DURATION_SEC = 0.1

# Hardware
DEFAULT_GPIO_CHIP = "/dev/gpiochip0"
DEFAULT_GPIO_PIN = 7
GPIO_CONSUMER = "garagedoor"

# Control port
DEFAULT_CONTROL_HOST = "127.0.0.1"
DEFAULT_CONTROL_PORT = 3013

# Movement request kinds
MOVE_TO = "to"
MOVE_UP = "up"
MOVE_DOWN = "down"
VALID_MOVEMENTS = (MOVE_UP, MOVE_DOWN, MOVE_TO)

# Height descriptions
HEIGHT_CLOSED = "closed"
HEIGHT_FULLY_OPEN = "fully open"
