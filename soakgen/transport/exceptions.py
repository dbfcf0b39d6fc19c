# soakgen/transport/exceptions.py

class TransportError(Exception):
    """Raised when a transport call fails before a response is received"""
    pass


class ChannelClosedError(TransportError):
    """Raised when the remote end closes a streaming channel"""
    pass
