"""Run a command while holding a fleet-wide lock (see ``fleetlock.cli``)."""

from fleetlock.cli import run

if __name__ == "__main__":
    run()
