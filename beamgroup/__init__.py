"""beamgroup: beam grouping and split repair over a notation relation graph."""

__version__ = "0.1.0"
