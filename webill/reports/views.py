from collections import OrderedDict
from datetime import datetime, timedelta
from decimal import Decimal

from django.db.models import Count, DecimalField, ExpressionWrapper, F, Q, Sum
from django.db.models.functions import Coalesce, TruncDate
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from webill.catalog.models import Item
from webill.core.exceptions import InvalidInput
from webill.invoices.models import Invoice, InvoiceItem
from webill.parties.models import Party
from webill.tax.gst import ZERO, quantize_money
from webill.transactions.models import Transaction, TransactionItem
from webill.transactions.serializers import TransactionListSerializer

RECENT_TRANSACTIONS_LIMIT = 5
TOP_ITEMS_LIMIT = 10


def _parse_date(value, param):
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise InvalidInput(f'{param} must be a date in YYYY-MM-DD format')


def _date_range(request, default_days=30):
    """``date_from``/``date_to`` query params, defaulting to the last ``default_days`` days"""
    today = timezone.localdate()
    date_from = request.query_params.get('date_from', None)
    date_to = request.query_params.get('date_to', None)
    date_from = _parse_date(date_from, 'date_from') if date_from else today - timedelta(days=default_days)
    date_to = _parse_date(date_to, 'date_to') if date_to else today
    if date_from > date_to:
        raise InvalidInput('date_from cannot be after date_to')
    return date_from, date_to


def _money(value):
    return quantize_money(value or ZERO)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_stats(request):
    """Headline numbers for the dashboard"""
    month_start = timezone.localdate().replace(day=1)

    revenue = Transaction.objects.filter(
        payment_status=Transaction.STATUS_COMPLETED,
        type__in=[Transaction.TYPE_SALE, Transaction.TYPE_INCOME],
    ).aggregate(total=Sum('total_amount'))['total']

    active_customers = Party.objects.filter(type=Party.TYPE_CUSTOMER, is_active=True).count()
    sales_this_month = Transaction.objects.filter(
        type=Transaction.TYPE_SALE, date__date__gte=month_start
    ).count()
    pending_invoices = Invoice.objects.filter(
        status__in=[Invoice.STATUS_DRAFT, Invoice.STATUS_SENT]
    ).count()

    return Response({
        'total_revenue': _money(revenue),
        'active_customers': active_customers,
        'sales_this_month': sales_this_month,
        'pending_invoices': pending_invoices,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def recent_transactions(request):
    queryset = Transaction.objects.select_related('customer', 'supplier').order_by('-date', '-id')
    return Response(TransactionListSerializer(queryset[:RECENT_TRANSACTIONS_LIMIT], many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def sales_summary(request):
    """Sales summary report with a daily breakdown"""
    date_from, date_to = _date_range(request)
    sales = Transaction.objects.filter(
        type=Transaction.TYPE_SALE,
        date__date__gte=date_from,
        date__date__lte=date_to,
    ).exclude(payment_status__in=[Transaction.STATUS_FAILED, Transaction.STATUS_REFUNDED])

    totals = sales.aggregate(
        total=Sum('total_amount'), tax=Sum('tax_amount'), discount=Sum('discount_amount'), count=Count('id')
    )
    items_sold = TransactionItem.objects.filter(transaction__in=sales).aggregate(
        total=Sum('quantity')
    )['total'] or 0
    count = totals['count']

    daily = sales.annotate(day=TruncDate('date')).values('day').annotate(
        total=Sum('total_amount'), count=Count('id')
    ).order_by('day')

    return Response({
        'period': {
            'from': date_from.isoformat(),
            'to': date_to.isoformat(),
        },
        'summary': {
            'total_sales': _money(totals['total']),
            'total_tax': _money(totals['tax']),
            'total_discount': _money(totals['discount']),
            'total_transactions': count,
            'total_items_sold': items_sold,
            'average_order_value': _money(totals['total'] / count) if count else Decimal('0.00'),
        },
        'daily_breakdown': [
            {'date': row['day'].isoformat(), 'total': _money(row['total']), 'count': row['count']}
            for row in daily
        ],
    })


def _gst_by_rate(lines):
    rows = lines.values('tax_rate').annotate(
        cgst=Sum('cgst_amount'),
        sgst=Sum('sgst_amount'),
        igst=Sum('igst_amount'),
        total=Sum('total_amount'),
        count=Count('id'),
    ).order_by('tax_rate')
    breakdown = []
    for row in rows:
        gst = (row['cgst'] or ZERO) + (row['sgst'] or ZERO) + (row['igst'] or ZERO)
        breakdown.append({
            'gst_rate': row['tax_rate'],
            'taxable_amount': _money((row['total'] or ZERO) - gst),
            'cgst_amount': _money(row['cgst']),
            'sgst_amount': _money(row['sgst']),
            'igst_amount': _money(row['igst']),
            'total_gst_amount': _money(gst),
            'line_count': row['count'],
        })
    return breakdown


def _gst_totals(breakdown):
    totals = OrderedDict((key, ZERO) for key in ('taxable_amount', 'cgst_amount', 'sgst_amount', 'igst_amount', 'total_gst_amount'))
    for row in breakdown:
        for key in totals:
            totals[key] += row[key]
    return totals


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def tax_summary(request):
    """
    GST summary for a period: output GST on sales and on invoices not raised
    from a sale, input GST on purchases, and the net liability.
    """
    date_from, date_to = _date_range(request, default_days=90)
    in_period = Q(transaction__date__date__gte=date_from, transaction__date__date__lte=date_to)

    sale_lines = TransactionItem.objects.filter(in_period, transaction__type=Transaction.TYPE_SALE)
    purchase_lines = TransactionItem.objects.filter(in_period, transaction__type=Transaction.TYPE_PURCHASE)
    # Invoices raised from a sale are already counted through the sale itself
    invoice_lines = InvoiceItem.objects.filter(
        invoice__issue_date__date__gte=date_from,
        invoice__issue_date__date__lte=date_to,
        invoice__transaction__isnull=True,
    ).exclude(invoice__status__in=[Invoice.STATUS_DRAFT, Invoice.STATUS_CANCELLED])

    sales_by_rate = _gst_by_rate(sale_lines)
    invoices_by_rate = _gst_by_rate(invoice_lines)
    output_breakdown = sales_by_rate + invoices_by_rate
    input_breakdown = _gst_by_rate(purchase_lines)
    output_totals = _gst_totals(output_breakdown)
    input_totals = _gst_totals(input_breakdown)

    return Response({
        'period': {
            'from': date_from.isoformat(),
            'to': date_to.isoformat(),
        },
        'output_tax': {
            'totals': output_totals,
            'sales_by_rate': sales_by_rate,
            'invoices_by_rate': invoices_by_rate,
        },
        'input_tax': {
            'totals': input_totals,
            'purchases_by_rate': input_breakdown,
        },
        'net_liability': {
            'cgst': output_totals['cgst_amount'] - input_totals['cgst_amount'],
            'sgst': output_totals['sgst_amount'] - input_totals['sgst_amount'],
            'igst': output_totals['igst_amount'] - input_totals['igst_amount'],
            'total': output_totals['total_gst_amount'] - input_totals['total_gst_amount'],
        },
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def pos_analytics(request):
    """Completed point-of-sale sales for one day (``date``, default today)"""
    date_param = request.query_params.get('date', None)
    day = _parse_date(date_param, 'date') if date_param else timezone.localdate()

    sales = list(
        Transaction.objects.filter(
            type=Transaction.TYPE_SALE,
            payment_status=Transaction.STATUS_COMPLETED,
            date__date=day,
        ).select_related('customer').prefetch_related('items__item').order_by('-date', '-id')
    )

    total_sales = sum((txn.total_amount for txn in sales), ZERO)
    total_items = sum(line.quantity for txn in sales for line in txn.items.all())

    methods = OrderedDict()
    items = {}
    hourly = [{'hour': hour, 'sales': ZERO, 'transactions': 0} for hour in range(24)]
    for txn in sales:
        method = methods.setdefault(txn.payment_method or 'UNKNOWN', {'count': 0, 'amount': ZERO})
        method['count'] += 1
        method['amount'] += txn.total_amount

        bucket = hourly[timezone.localtime(txn.date).hour]
        bucket['sales'] += txn.total_amount
        bucket['transactions'] += 1

        for line in txn.items.all():
            stats = items.setdefault(line.item_id, {
                'item_id': line.item_id,
                'name': line.item.name,
                'sku': line.item.sku,
                'quantity': 0,
                'revenue': ZERO,
                'transactions': set(),
            })
            stats['quantity'] += line.quantity
            stats['revenue'] += line.total_amount
            stats['transactions'].add(txn.id)

    top_items = sorted(items.values(), key=lambda stats: stats['revenue'], reverse=True)[:TOP_ITEMS_LIMIT]
    for stats in top_items:
        stats['transactions'] = len(stats['transactions'])

    return Response({
        'date': day.isoformat(),
        'summary': {
            'total_sales': _money(total_sales),
            'total_transactions': len(sales),
            'average_transaction': _money(total_sales / len(sales)) if sales else Decimal('0.00'),
            'total_items': total_items,
        },
        'payment_methods': [
            {
                'method': name,
                'count': stats['count'],
                'amount': _money(stats['amount']),
                'percentage': _money(stats['amount'] / total_sales * 100) if total_sales else Decimal('0.00'),
            }
            for name, stats in methods.items()
        ],
        'top_items': top_items,
        'hourly_trend': hourly,
        'recent_transactions': [
            {
                'id': txn.id,
                'transaction_number': txn.transaction_number,
                'customer_name': txn.customer.name if txn.customer else 'Walk-in Customer',
                'total_amount': txn.total_amount,
                'payment_method': txn.payment_method or 'UNKNOWN',
                'date': txn.date,
                'item_count': sum(line.quantity for line in txn.items.all()),
            }
            for txn in sales[:10]
        ],
    })


OPEN_INVOICE_STATUSES = [Invoice.STATUS_SENT, Invoice.STATUS_OVERDUE]


def _percent(part, whole):
    return _money(part / whole * 100) if whole else Decimal('0.00')


def _as_of(request):
    as_of = request.query_params.get('as_of', None)
    return _parse_date(as_of, 'as_of') if as_of else timezone.localdate()


def _aging_buckets(as_of):
    """Days-past-due buckets keyed by name, as filters on the invoice due date"""
    edges = [as_of - timedelta(days=days) for days in (30, 60, 90)]
    return OrderedDict([
        ('current', Q(due_date__date__gte=as_of)),
        ('days_1_30', Q(due_date__date__lt=as_of, due_date__date__gte=edges[0])),
        ('days_31_60', Q(due_date__date__lt=edges[0], due_date__date__gte=edges[1])),
        ('days_61_90', Q(due_date__date__lt=edges[1], due_date__date__gte=edges[2])),
        ('days_over_90', Q(due_date__date__lt=edges[2])),
    ])


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def party_aging(request):
    """
    Receivables aging: open (SENT/OVERDUE) invoice balances per customer,
    bucketed by days past due as of ``as_of`` (default today).
    """
    as_of = _as_of(request)
    buckets = _aging_buckets(as_of)
    bucket_sums = {name: Sum('balance_amount', filter=condition) for name, condition in buckets.items()}

    rows = Invoice.objects.filter(
        status__in=OPEN_INVOICE_STATUSES, balance_amount__gt=0
    ).values(
        'customer_id', 'customer__name', 'customer__email', 'customer__phone', 'customer__credit_limit'
    ).annotate(
        total=Sum('balance_amount'), invoice_count=Count('id'), **bucket_sums
    ).order_by('-total', 'customer__name')

    totals = OrderedDict((name, ZERO) for name in list(buckets) + ['total'])
    parties = []
    for row in rows:
        entry = {
            'customer_id': row['customer_id'],
            'customer_name': row['customer__name'],
            'email': row['customer__email'],
            'phone': row['customer__phone'],
            'credit_limit': row['customer__credit_limit'],
            'invoice_count': row['invoice_count'],
        }
        for name in totals:
            entry[name] = _money(row[name])
            totals[name] += entry[name]
        parties.append(entry)

    return Response({
        'as_of': as_of.isoformat(),
        'summary': {
            'party_count': len(parties),
            'totals': totals,
        },
        'parties': parties,
    })


def _credit_risk(utilization):
    if utilization > 90:
        return 'HIGH'
    if utilization > 70:
        return 'MEDIUM'
    if utilization > 50:
        return 'LOW'
    return 'MINIMAL'


def _credit_action(risk, overdue_invoices):
    if risk == 'HIGH':
        return 'SUSPEND_CREDIT'
    if risk == 'MEDIUM':
        return 'MONITOR_CLOSELY'
    if overdue_invoices:
        return 'FOLLOW_UP_PAYMENT'
    return 'NORMAL'


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def credit_analysis(request):
    """Outstanding balance against credit limit for every active customer that has one"""
    open_invoices = Q(invoices__status__in=OPEN_INVOICE_STATUSES)
    overdue_invoices = Q(invoices__status=Invoice.STATUS_OVERDUE)
    customers = Party.objects.filter(
        type=Party.TYPE_CUSTOMER, is_active=True, credit_limit__gt=0
    ).annotate(
        outstanding=Sum('invoices__balance_amount', filter=open_invoices),
        outstanding_count=Count('invoices', filter=open_invoices),
        overdue=Sum('invoices__balance_amount', filter=overdue_invoices),
        overdue_count=Count('invoices', filter=overdue_invoices),
    )

    rows = []
    for customer in customers:
        outstanding = _money(customer.outstanding)
        utilization = _percent(outstanding, customer.credit_limit)
        risk = _credit_risk(utilization)
        rows.append({
            'customer_id': customer.id,
            'customer_name': customer.name,
            'email': customer.email,
            'phone': customer.phone,
            'payment_terms': customer.payment_terms,
            'credit_limit': customer.credit_limit,
            'outstanding_amount': outstanding,
            'outstanding_invoices': customer.outstanding_count,
            'overdue_amount': _money(customer.overdue),
            'overdue_invoices': customer.overdue_count,
            'available_credit': max(ZERO, customer.credit_limit - outstanding),
            'credit_utilization': utilization,
            'over_limit': outstanding > customer.credit_limit,
            'credit_risk': risk,
            'recommended_action': _credit_action(risk, customer.overdue_count),
        })
    rows.sort(key=lambda row: row['credit_utilization'], reverse=True)

    total_limit = sum((row['credit_limit'] for row in rows), ZERO)
    total_outstanding = sum((row['outstanding_amount'] for row in rows), ZERO)
    risk_distribution = OrderedDict((risk, 0) for risk in ('high', 'medium', 'low', 'minimal'))
    for row in rows:
        risk_distribution[row['credit_risk'].lower()] += 1

    return Response({
        'as_of': timezone.localdate().isoformat(),
        'summary': {
            'customers_with_credit': len(rows),
            'total_credit_limit': total_limit,
            'total_outstanding': total_outstanding,
            'total_overdue': sum((row['overdue_amount'] for row in rows), ZERO),
            'total_available_credit': sum((row['available_credit'] for row in rows), ZERO),
            'overall_utilization': _percent(total_outstanding, total_limit),
            'over_limit_count': sum(1 for row in rows if row['over_limit']),
            'risk_distribution': risk_distribution,
        },
        'customers': rows,
        'needs_attention': [row for row in rows if row['recommended_action'] != 'NORMAL'],
    })


def _stock_value(price):
    return ExpressionWrapper(F('stock_quantity') * price, output_field=DecimalField(max_digits=16, decimal_places=2))


def _valuation_sums():
    # Items without a cost price are valued at their selling price
    return {
        'cost_value': Sum(_stock_value(Coalesce('cost_price', 'unit_price'))),
        'retail_value': Sum(_stock_value(F('unit_price'))),
        'units': Sum('stock_quantity'),
        'item_count': Count('id'),
    }


def _valuation_row(row):
    cost_value = _money(row['cost_value'])
    retail_value = _money(row['retail_value'])
    return {
        'item_count': row['item_count'],
        'units': row['units'] or 0,
        'cost_value': cost_value,
        'retail_value': retail_value,
        'potential_profit': retail_value - cost_value,
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inventory_valuation(request):
    """Stock on hand valued at cost and at selling price, overall and per category. Services carry no stock."""
    stock = Item.objects.filter(is_active=True, is_service=False)
    summary = _valuation_row(stock.aggregate(**_valuation_sums()))

    by_category = []
    rows = stock.values('category_id', 'category__name').annotate(**_valuation_sums()).order_by('category__name')
    for row in rows:
        entry = {
            'category_id': row['category_id'],
            'category_name': row['category__name'] or 'Uncategorized',
        }
        entry.update(_valuation_row(row))
        by_category.append(entry)

    top_items = stock.annotate(
        cost_value=_stock_value(Coalesce('cost_price', 'unit_price')),
        retail_value=_stock_value(F('unit_price')),
    ).order_by('-cost_value', 'name')[:TOP_ITEMS_LIMIT]

    return Response({
        'summary': summary,
        'by_category': by_category,
        'top_items': [
            {
                'item_id': item.id,
                'name': item.name,
                'sku': item.sku,
                'stock_quantity': item.stock_quantity,
                'cost_price': item.cost_price,
                'unit_price': item.unit_price,
                'cost_value': _money(item.cost_value),
                'retail_value': _money(item.retail_value),
            }
            for item in top_items
        ],
    })


def _stock_status(item):
    if item.stock_quantity <= 0:
        return 'OUT_OF_STOCK'
    if item.stock_quantity * 2 <= item.min_stock:
        return 'CRITICAL'
    return 'LOW'


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def low_stock(request):
    """Active goods at or below their minimum stock, with a reorder suggestion"""
    items = Item.objects.filter(
        is_active=True, is_service=False, stock_quantity__lte=F('min_stock')
    ).select_related('category').annotate(
        shortfall=F('min_stock') - F('stock_quantity')
    ).order_by('stock_quantity', 'name')

    rows = []
    for item in items:
        rows.append({
            'item_id': item.id,
            'name': item.name,
            'sku': item.sku,
            'category': item.category.name if item.category else None,
            'stock_quantity': item.stock_quantity,
            'min_stock': item.min_stock,
            'shortfall': item.shortfall,
            'status': _stock_status(item),
            'suggested_order_quantity': max(item.min_stock * 2, 10),
        })

    return Response({
        'summary': {
            'total': len(rows),
            'out_of_stock': sum(1 for row in rows if row['status'] == 'OUT_OF_STOCK'),
            'critical': sum(1 for row in rows if row['status'] == 'CRITICAL'),
            'low': sum(1 for row in rows if row['status'] == 'LOW'),
        },
        'items': rows,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def profit_loss(request):
    """
    Profit and loss for a period: sales and other income less purchases
    (cost of goods) and expenses. Failed and refunded transactions are left out.
    """
    date_from, date_to = _date_range(request)
    booked = Transaction.objects.filter(
        date__date__gte=date_from,
        date__date__lte=date_to,
    ).exclude(payment_status__in=[Transaction.STATUS_FAILED, Transaction.STATUS_REFUNDED])

    by_type = {
        row['type']: row
        for row in booked.values('type').annotate(total=Sum('total_amount'), count=Count('id')).order_by('type')
    }

    def total(kind):
        return _money(by_type[kind]['total']) if kind in by_type else Decimal('0.00')

    sales = total(Transaction.TYPE_SALE)
    income = total(Transaction.TYPE_INCOME)
    purchases = total(Transaction.TYPE_PURCHASE)
    expenses = total(Transaction.TYPE_EXPENSE)
    revenue = sales + income
    gross_profit = revenue - purchases
    net_profit = gross_profit - expenses

    expense_rows = booked.filter(type=Transaction.TYPE_EXPENSE).values('category').annotate(
        total=Sum('total_amount'), count=Count('id')
    ).order_by('-total', 'category')

    return Response({
        'period': {
            'from': date_from.isoformat(),
            'to': date_to.isoformat(),
        },
        'revenue': {
            'sales': sales,
            'other_income': income,
            'total': revenue,
        },
        'cost_of_goods': purchases,
        'gross_profit': {
            'amount': gross_profit,
            'margin': _percent(gross_profit, revenue),
        },
        'expenses': {
            'total': expenses,
            'by_category': [
                {'category': row['category'] or 'Uncategorized', 'total': _money(row['total']), 'count': row['count']}
                for row in expense_rows
            ],
        },
        'net_profit': {
            'amount': net_profit,
            'margin': _percent(net_profit, revenue),
        },
        'transaction_counts': {kind: row['count'] for kind, row in by_type.items()},
    })
