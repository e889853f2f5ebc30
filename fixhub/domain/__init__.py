"""Domain packages - one per workflow area (repository, service, schemas, router)"""
