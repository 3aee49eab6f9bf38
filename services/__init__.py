"""
服務層

這個 package 包含純計算邏輯，不負責狀態轉換：
- RulesService：井字遊戲規則（落子、勝負、先手）
- NamingService：房間代碼與名稱生成邏輯
"""
