"""Scripted stand-in for the sapf interpreter used by integration tests.

Reads commands from stdin and answers the way sapf does: free-form output
lines followed by a prompt line, with no end-of-response marker.
"""

import sys
import time

PROMPT = "sapf> "

DEVICE_LINES = [
    "Starting MIDI client",
    "MIDI Source 0 'IAC Driver Bus 1', unique id -1198431231",
    "MIDI Source 1 'sapf', unique id 42",
    "MIDI Destination 0 'IAC Driver Bus 1', unique id 512",
]

BROKEN_DEVICE_LINES = [
    "Starting MIDI client",
    "MIDI Source 0 'sapf' unique id 42",
]


def say(*lines):
    for line in lines:
        print(line, flush=True)


def main():
    broken_midi = "--broken-midi" in sys.argv
    say("sapf ready", PROMPT)

    while True:
        command = sys.stdin.readline()
        if not command:
            return 0
        command = command.strip()

        if command == "quit":
            return 0
        if command.startswith("exit "):
            return int(command.split()[1])

        if command == "midiStart":
            say(*(BROKEN_DEVICE_LINES if broken_midi else DEVICE_LINES))
        elif command == "5 4 *":
            say("20")
        elif command == "burst":
            for line in ("one", "two", "three"):
                say(line)
                time.sleep(0.01)
            say(PROMPT)
            time.sleep(0.6)
            say("late")
            continue
        elif command.startswith("stream "):
            duration = float(command.split()[1])
            deadline = time.monotonic() + duration
            while time.monotonic() < deadline:
                say("tick")
                time.sleep(0.02)
        elif command.startswith("die "):
            for _ in range(5):
                say("dying")
                time.sleep(0.02)
            return int(command.split()[1])
        elif command:
            say(f"echo {command}")
        say(PROMPT)


if __name__ == "__main__":
    sys.exit(main())
