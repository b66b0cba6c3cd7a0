"""
Application Constants

Central location for commands, label keys and timing defaults.
"""

# === Sampling ===
CPU_SAMPLE_DELAY_SECONDS = 0.4
VM_CACHE_SECONDS = 60.0
EVENT_LISTENER_RESTART_DELAY_SECONDS = 5.0
PUSH_INTERVAL_SECONDS = 1.0
MIN_REFRESH_SECONDS = 5

# === Host commands ===
CMD_CPU_STAT = "head -n1 /proc/stat"
CMD_MEMINFO = "grep -E 'MemTotal|MemAvailable|MemFree' /proc/meminfo"
CMD_UPTIME = "cat /proc/uptime"
CMD_HOSTNAME = "hostname"
CMD_DISK_USAGE = "df -B1 {mount} | tail -n 1"
CMD_NET_COUNTERS = (
    "cat /sys/class/net/{iface}/statistics/rx_bytes; "
    "cat /sys/class/net/{iface}/statistics/tx_bytes"
)

# === Docker commands ===
CMD_DOCKER_PS_ALL = "docker ps -a --no-trunc --format '{{json .}}'"
CMD_DOCKER_PS_RUNNING = "docker ps --no-trunc --format '{{json .}}'"
CMD_DOCKER_PS_ONE = "docker ps -a --no-trunc --filter id={id} --format '{{{{json .}}}}'"
CMD_DOCKER_INSPECT = "docker inspect {ids}"
CMD_DOCKER_EVENTS = "docker events --format '{{json .}}'"
CMD_DOCKER_STATS = "docker stats --no-stream --format '{{json .}}'"

# === Virtualization commands ===
CMD_VIRSH_LIST_ALL = "virsh list --all"
CMD_VIRSH_LIST_RUNNING = "virsh list --state-running"

# === Container labels ===
LABEL_WEBUI = "net.unraid.docker.webui"
LABEL_ICON = "net.unraid.docker.icon"

# === Defaults ===
DEFAULT_HOST_IP = "0.0.0.0"
DEFAULT_PROTOCOL = "tcp"
DEFAULT_URL_HOST = "localhost"
DEFAULT_INTERFACE = "eth0"
SHORT_ID_LENGTH = 12
