"""Order processing core: pricing, table sessions, orders, promotions and checkout"""
