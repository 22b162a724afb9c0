"""
核心協調層

這個 package 包含所有房間 / 計時的核心邏輯，包括：
- 狀態機：集中管理所有狀態轉換（純函式）
- Manager：處理 inbound 事件，串起 lock、狀態機與廣播
- Registry / Session Binding：房間與連線的對應
- Broadcaster / Presence：廣播與斷線寬限期
- Locks：每個房間一把 asyncio.Lock
"""
