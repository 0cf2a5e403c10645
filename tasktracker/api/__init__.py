"""HTTP edge: app factory, routers, response envelope."""
