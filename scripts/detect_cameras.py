#!/usr/bin/env python3
"""
Camera detection utility.
Lists cameras the tracker can open and shows the id to select.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from gesture_arcade.capture.devices import (
    DEFAULT_CAMERA_ID, detect_camera_options,
)


def main():
    print("=" * 60)
    print("CAMERA DETECTION")
    print("=" * 60)

    options = detect_camera_options()
    working = [option for option in options if option.id != DEFAULT_CAMERA_ID]

    if not working:
        print("\n✗ No cameras detected!")
        print("\nTroubleshooting:")
        print("  1. Check the webcam is connected and not used by another app")
        print("  2. On Linux: ls /dev/video* and check permissions")
        print("  3. Try the default device anyway: --camera default")
        return 1

    print("\n✓ Found {} working camera(s):".format(len(working)))
    for option in working:
        print("  - id {:>3}  {}".format(option.id, option.label))

    print("\nTo use one:")
    print("  gesture-arcade --camera {}".format(working[0].id))
    return 0


if __name__ == "__main__":
    sys.exit(main())
