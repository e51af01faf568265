"""
ambilight_ble
Screen ambient color extraction driving a Bluetooth LE light.
"""
