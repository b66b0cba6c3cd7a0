"""Unit tests for VmInventory."""

import asyncio

import pytest

from domain.entities.virtual_machine import VirtualMachine
from domain.errors import ExecutionError
from infrastructure.virtualization.vm_inventory import VmInventory, parse_virsh_list
from shared.constants import CMD_VIRSH_LIST_ALL

VIRSH_OUTPUT = """ Id   Name        State
----------------------------
 1    Windows11   running
 -    Ubuntu      shut off
 -    Home Assistant   paused

"""


class TestParseVirshList:
    """Tests for parse_virsh_list()."""

    def test_parses_table(self):
        assert parse_virsh_list(VIRSH_OUTPUT) == [
            VirtualMachine("Windows11", "running"),
            VirtualMachine("Ubuntu", "shut off"),
            VirtualMachine("Home Assistant", "paused"),
        ]

    def test_state_lowercased(self):
        [vm] = parse_virsh_list(" 3    Win   Running")
        assert vm.state == "running"
        assert vm.running

    def test_short_rows_dropped(self):
        assert parse_virsh_list(" 1 single-spaced row") == []

    def test_empty(self):
        assert parse_virsh_list("") == []


class TestVmInventory:
    """Tests for the staleness cache."""

    @pytest.mark.asyncio
    async def test_fresh_value_served_without_poll(self, executor, clock):
        executor.on(CMD_VIRSH_LIST_ALL, VIRSH_OUTPUT)
        inventory = VmInventory(executor, clock=clock, stale_after=60)

        first = await inventory.get()
        clock.advance(30)
        second = await inventory.get()

        assert first is second
        assert executor.count(CMD_VIRSH_LIST_ALL) == 1

    @pytest.mark.asyncio
    async def test_stale_value_repolled(self, executor, clock):
        executor.on(CMD_VIRSH_LIST_ALL, VIRSH_OUTPUT, " 1    Windows11   running")
        inventory = VmInventory(executor, clock=clock, stale_after=60)

        await inventory.get()
        clock.advance(61)
        vms = await inventory.get()

        assert [vm.name for vm in vms] == ["Windows11"]
        assert executor.count(CMD_VIRSH_LIST_ALL) == 2

    @pytest.mark.asyncio
    async def test_poll_failure_returns_stale_value(self, executor, clock):
        executor.on(
            CMD_VIRSH_LIST_ALL,
            VIRSH_OUTPUT,
            ExecutionError(CMD_VIRSH_LIST_ALL, 1, "libvirt not running"),
        )
        inventory = VmInventory(executor, clock=clock, stale_after=60)

        original = await inventory.get()
        clock.advance(120)
        fallback = await inventory.get()

        assert fallback is original
        assert len(fallback) == 3
        # Timestamp not advanced, so the next call polls again
        assert inventory.is_stale()

    @pytest.mark.asyncio
    async def test_first_poll_failure_returns_empty(self, executor, clock):
        inventory = VmInventory(executor, clock=clock)
        assert await inventory.get() == []

    @pytest.mark.asyncio
    async def test_concurrent_stale_callers_poll_once(self, executor, clock):
        executor.on(CMD_VIRSH_LIST_ALL, VIRSH_OUTPUT)
        inventory = VmInventory(executor, clock=clock)

        await asyncio.gather(*(inventory.get() for _ in range(5)))

        assert executor.count(CMD_VIRSH_LIST_ALL) == 1

    @pytest.mark.asyncio
    async def test_invalidate(self, executor, clock):
        executor.on(CMD_VIRSH_LIST_ALL, VIRSH_OUTPUT)
        inventory = VmInventory(executor, clock=clock)
        await inventory.get()
        inventory.invalidate()
        await inventory.get()
        assert executor.count(CMD_VIRSH_LIST_ALL) == 2
