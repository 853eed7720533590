"""
Núcleo de sincronización one-way: Paprika -> base de datos relacional.

Este paquete está diseñado para ejecutarse como job (cron / loop / job en
background del API), no dentro del request/response.

Objetivos de diseño:
- Idempotencia: re-aplicar un lote ya aplicado no cambia nada.
- Atomicidad por lote: todos los tipos de una pasada hacen commit juntos.
- Sin reescrituras: lo que no cambió (mismo fingerprint) no se toca.
- Progreso durable por tipo, avanzado en la misma transacción que los datos.
"""
