"""
Block API Routes.

Endpoints for browsing the block catalog the builder palette shows.
"""

from fastapi import APIRouter, HTTPException

from blockflow.api.schemas import BlockListResponse, BlockTypeInfo, ErrorResponse
from blockflow.engine.blocks import BlockType
from blockflow.engine.registry import block_registry


router = APIRouter(prefix="/blocks", tags=["Blocks"])


def _to_info(block_type: BlockType) -> BlockTypeInfo:
    return BlockTypeInfo(
        **block_type.to_dict(),
        has_executor=block_registry.has_executor(block_type.id),
    )


@router.get("/", response_model=BlockListResponse)
async def list_blocks() -> BlockListResponse:
    """List all registered block types."""
    blocks = [_to_info(b) for b in block_registry.list_block_types()]
    return BlockListResponse(blocks=blocks, total=len(blocks))


@router.get(
    "/{block_type_id}",
    response_model=BlockTypeInfo,
    responses={404: {"model": ErrorResponse}},
)
async def get_block(block_type_id: str) -> BlockTypeInfo:
    """Get a specific block type."""
    block_type = block_registry.get_block_type(block_type_id)
    if not block_type:
        raise HTTPException(status_code=404, detail=f"Block type '{block_type_id}' not found")
    return _to_info(block_type)
