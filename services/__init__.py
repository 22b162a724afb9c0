"""
服務層

這個 package 包含純計算邏輯，不負責狀態轉換：
- NamingService：房間代碼與 Checkpoint ID 生成
- PhaseService：階段時長與提醒時間規則
"""
