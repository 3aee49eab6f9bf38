"""
核心業務邏輯層

這個 package 包含房間同步的核心邏輯，包括：
- Store：唯一存取遠端文件 store 的 adapter（含文件清理）
- 狀態機：集中管理所有房間狀態轉換
- Manager：管理 Room 的生命週期
- Sync Loop / Session：客戶端輪詢與工作階段
"""
