from dataclasses import dataclass


@dataclass(frozen=True)
class VirtualMachine:
    """Libvirt domain as listed by ``virsh list``"""

    name: str
    state: str

    @property
    def running(self) -> bool:
        return self.state.lower().startswith("running")

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "state": self.state,
            "running": self.running,
        }
