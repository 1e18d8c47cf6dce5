"""HTTP routers for the store intelligence service"""
