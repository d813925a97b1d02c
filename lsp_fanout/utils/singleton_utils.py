"""singleton base class shared by process-wide helpers"""

from threading import Lock


class SingletonInstance:
    """base class giving each subclass one lazily created instance"""

    _instances: dict = {}
    _creation_lock = Lock()

    @classmethod
    def instance(cls, *args, **kwargs):
        """create or get the singleton instance of this class

        arguments are only used on first creation.
        """
        with cls._creation_lock:
            if cls not in SingletonInstance._instances:
                SingletonInstance._instances[cls] = cls(*args, **kwargs)
            return SingletonInstance._instances[cls]

    @classmethod
    def has_instance(cls) -> bool:
        """check if the singleton has been created"""
        return cls in SingletonInstance._instances

    @classmethod
    def reset_instance(cls):
        """drop the singleton instance (for testing and reconfiguration)"""
        with cls._creation_lock:
            SingletonInstance._instances.pop(cls, None)
