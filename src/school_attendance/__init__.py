"""School attendance package.

This package is organized by feature modules (users, classes, students,
sessions, attendance, reports) with a thin Flask controller layer over
service/repository layers. Access rules live in ``access`` and every
attendance statistic is computed by ``reports.aggregation``.
"""
