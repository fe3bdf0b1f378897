import numpy as np
import pytest

from heatdistance.parallel.comm import SerialCommunicator, get_communicator


def test_serial_communicator_is_identity():
    comm = get_communicator()
    assert isinstance(comm, SerialCommunicator)
    assert comm.rank == 0
    assert comm.size == 1
    assert comm.allreduce(3.5, op="min") == 3.5
    assert comm.allgather("a") == ["a"]
    assert comm.alltoall([7]) == [7]
    comm.barrier()


def test_serial_alltoall_rejects_wrong_length():
    with pytest.raises(ValueError):
        SerialCommunicator().alltoall([1, 2])


def test_unknown_reduction_is_rejected():
    with pytest.raises(ValueError, match="Unknown reduction"):
        SerialCommunicator().allreduce(1.0, op="mean")


def test_collectives_across_ranks(run_parallel):
    def body(comm):
        total = comm.allreduce(comm.rank + 1, op="sum")
        lowest = comm.allreduce(float(10 - comm.rank), op="min")
        gathered = comm.allgather(comm.rank)
        received = comm.alltoall([(comm.rank, dest) for dest in range(comm.size)])
        vector = comm.allreduce(np.full(2, comm.rank, dtype=float), op="max")
        comm.barrier()
        return total, lowest, gathered, received, vector

    results = run_parallel(3, body)
    for rank, (total, lowest, gathered, received, vector) in enumerate(results):
        assert total == 6
        assert lowest == 8.0
        assert gathered == [0, 1, 2]
        assert received == [(src, rank) for src in range(3)]
        np.testing.assert_array_equal(vector, [2.0, 2.0])
