"""Account lifecycle and authentication core of the PDU manager backend."""
