from heatdistance.parallel.comm import (
    Communicator,
    MPICommunicator,
    SerialCommunicator,
    get_communicator,
)

__all__ = [
    "Communicator",
    "MPICommunicator",
    "SerialCommunicator",
    "get_communicator",
]
