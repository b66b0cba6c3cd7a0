"""Container and VM inventory endpoints."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from presentation.api.dependencies import get_container_inventory, get_settings, get_vm_inventory
from presentation.api.schemas.snapshot import ContainerListResponse, VmListResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Inventory"])


@router.get(
    "/containers",
    response_model=ContainerListResponse,
    summary="List containers",
    description="Containers as currently held by the event-driven inventory.",
)
async def list_containers(
    inventory=Depends(get_container_inventory),
    settings=Depends(get_settings),
) -> JSONResponse:
    containers = await inventory.get()
    if not settings.collector.show_stopped:
        containers = [c for c in containers if c.running]
    return JSONResponse({
        "containers": [c.to_dict() for c in containers],
        "total": len(containers),
    })


@router.get(
    "/vms",
    response_model=VmListResponse,
    summary="List virtual machines",
    description="VM list, polled from libvirt at most once per cache window.",
)
async def list_vms(
    vm_inventory=Depends(get_vm_inventory),
    settings=Depends(get_settings),
) -> JSONResponse:
    vms = await vm_inventory.get()
    if not settings.collector.show_stopped:
        vms = [vm for vm in vms if vm.running]
    return JSONResponse({
        "vms": [vm.to_dict() for vm in vms],
        "total": len(vms),
    })
