"""
Debug API Endpoints

唯讀的診斷介面：列出所有房間的完整狀態
"""
from fastapi import APIRouter, Depends, HTTPException
import logging

from core.room_manager import RoomManager, get_room_manager

router = APIRouter(prefix="/debug", tags=["debug"])
logger = logging.getLogger(__name__)


@router.get("/rooms")
async def list_rooms(manager: RoomManager = Depends(get_room_manager)):
    """
    取得所有房間的 snapshot

    返回：
        每個房間的 roomCode, roomName, totalDuration, questionDuration,
        remainingTime, phase, isRunning, isLocked, participants,
        checkpoints, lastUpdated
    """
    try:
        logger.info("GET /debug/rooms requested")
        return manager.rooms_snapshot()
    except Exception as e:
        logger.error(f"Error in /debug/rooms: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")
