"""
Conversion of the raw LM75 temperature register word to degrees Celsius.

The word is read with an SMBus word read, so the two register bytes arrive
swapped: the low byte holds the integer degrees and bit 15 holds the
half-degree bit.
"""

WORD_MASK = 0xFFFF
SIGN_BIT = 0x100


def half_degrees_to_celsius(half_degrees):
    if (half_degrees & SIGN_BIT) == 0:
        return half_degrees / 2
    return -((~half_degrees & 0xFF) / 2)


def to_celsius(raw_temp):
    """Convert a raw 16-bit register value to a temperature in Celsius"""
    raw_temp &= WORD_MASK
    half_degrees = ((raw_temp & 0x7F) << 1) + (raw_temp >> 15)
    return half_degrees_to_celsius(half_degrees)
