"""
API 層：WebSocket 事件入口與唯讀 debug endpoint
"""
