"""Default tool catalog for the site backend action API.

Each definition maps one operator action onto an HTTP route of the
backend. The handlers behind those routes live in the backend service.
"""

from actiongate.tools.models import (
    BackendRoute,
    SideEffectClass,
    ToolDefinition,
    ToolParameter,
)
from actiongate.tools.registry import ToolRegistry

READ = SideEffectClass.READ
WRITE = SideEffectClass.WRITE
SENSITIVE = SideEffectClass.SENSITIVE


def _id(what: str) -> ToolParameter:
    return ToolParameter(name="id", type="integer", description=f"Numeric {what} ID")


def _ref(name: str, what: str) -> ToolParameter:
    return ToolParameter(name=name, type="integer", description=f"ID of the {what}")


def _limit(what: str, default: int) -> ToolParameter:
    return ToolParameter(
        name="limit",
        type="integer",
        description=f"Maximum number of {what}",
        required=False,
        default=default,
    )


def _offset() -> ToolParameter:
    return ToolParameter(
        name="offset", type="integer", description="Number of items to skip", required=False
    )


def _period() -> ToolParameter:
    return ToolParameter(
        name="period",
        type="integer",
        description="Days to analyze",
        required=False,
        default=30,
    )


# =============================================================================
# Blog
# =============================================================================

BLOG_TOOLS = [
    ToolDefinition(
        name="create_blog_post",
        description="Create a new draft blog post.",
        parameters=(
            ToolParameter(name="title", type="string", description="Post title"),
            ToolParameter(name="content", type="string", description="Post body (markdown)"),
            ToolParameter(
                name="excerpt", type="string", description="Short summary", required=False
            ),
            ToolParameter(
                name="authorId",
                type="integer",
                description="Author user ID",
                required=False,
                default=1,
            ),
        ),
        side_effect=WRITE,
        route=BackendRoute(method="POST", path="/posts", fixed={"type": "create"}),
    ),
    ToolDefinition(
        name="update_blog_post",
        description="Update the title, content or excerpt of an existing blog post.",
        parameters=(
            _id("post"),
            ToolParameter(name="title", type="string", description="New title", required=False),
            ToolParameter(
                name="content", type="string", description="New body", required=False
            ),
            ToolParameter(
                name="excerpt", type="string", description="New summary", required=False
            ),
        ),
        side_effect=WRITE,
        route=BackendRoute(method="PUT", path="/posts", fixed={"type": "update"}),
    ),
    ToolDefinition(
        name="publish_blog_post",
        description="Publish a draft blog post.",
        parameters=(_id("post"),),
        side_effect=WRITE,
        route=BackendRoute(method="PUT", path="/posts", fixed={"type": "publish"}),
    ),
    ToolDefinition(
        name="delete_blog_post",
        description="Move a blog post to the trash.",
        parameters=(_id("post"),),
        side_effect=WRITE,
        route=BackendRoute(method="PUT", path="/posts", fixed={"type": "trash"}),
    ),
    ToolDefinition(
        name="get_blog_post",
        description="Retrieve a blog post by ID.",
        parameters=(_id("post"),),
        route=BackendRoute(method="GET", path="/posts", fixed={"type": "get"}),
    ),
]

# =============================================================================
# Content
# =============================================================================

CONTENT_TOOLS = [
    ToolDefinition(
        name="schedule_post",
        description="Schedule a draft blog post to be published automatically at a given time.",
        parameters=(
            _ref("postId", "post"),
            ToolParameter(
                name="publishDate",
                type="string",
                description="When to publish (ISO 8601, YYYY-MM-DDTHH:mm:ss)",
            ),
        ),
        side_effect=WRITE,
        route=BackendRoute(method="POST", path="/posts/{postId}/schedule"),
    ),
    ToolDefinition(
        name="bulk_schedule_posts",
        description="Schedule several blog posts at a fixed interval. Requires approval from an admin.",
        parameters=(
            ToolParameter(name="postIds", type="array", description="Post IDs in publishing order"),
            ToolParameter(
                name="startDate", type="string", description="First publication date (ISO 8601)"
            ),
            ToolParameter(name="interval", type="integer", description="Days between posts"),
        ),
        side_effect=SENSITIVE,
        route=BackendRoute(method="POST", path="/posts/bulk-schedule"),
        approval_template="Schedule posts {postIds} from {startDate}, one every {interval} days",
    ),
    ToolDefinition(
        name="generate_post_content",
        description="Draft a title, body and excerpt for a blog post from a topic or outline.",
        parameters=(
            ToolParameter(name="topic", type="string", description="Topic or outline"),
            ToolParameter(
                name="tone",
                type="string",
                description="Writing tone",
                required=False,
                default="professional",
                enum=("professional", "casual", "technical", "friendly"),
            ),
            ToolParameter(
                name="length",
                type="string",
                description="Content length",
                required=False,
                default="medium",
                enum=("short", "medium", "long"),
            ),
        ),
        route=BackendRoute(method="POST", path="/posts/generate"),
    ),
    ToolDefinition(
        name="optimize_seo",
        description="Analyze a blog post and suggest keywords, meta description and readability fixes.",
        parameters=(_ref("postId", "post"),),
        route=BackendRoute(method="POST", path="/posts/{postId}/seo"),
    ),
    ToolDefinition(
        name="get_post_analytics",
        description="Get views, engagement and reader metrics for a blog post.",
        parameters=(
            _ref("postId", "post"),
            _period(),
        ),
        route=BackendRoute(method="GET", path="/posts/{postId}/analytics"),
    ),
    ToolDefinition(
        name="create_page",
        description="Create a static page such as About Us or Privacy Policy.",
        parameters=(
            ToolParameter(name="title", type="string", description="Page title"),
            ToolParameter(name="slug", type="string", description="URL slug, e.g. about-us"),
            ToolParameter(name="content", type="string", description="Page body (HTML or markdown)"),
            ToolParameter(
                name="template",
                type="string",
                description="Page layout",
                required=False,
                default="default",
                enum=("default", "full-width", "sidebar"),
            ),
        ),
        side_effect=WRITE,
        route=BackendRoute(method="POST", path="/pages"),
    ),
]

# =============================================================================
# Tickets
# =============================================================================

TICKET_TOOLS = [
    ToolDefinition(
        name="get_ticket",
        description="Retrieve a support ticket by ID.",
        parameters=(_id("ticket"),),
        route=BackendRoute(method="GET", path="/tickets", fixed={"type": "get"}),
    ),
    ToolDefinition(
        name="get_open_tickets",
        description="List all open support tickets. Takes no parameters.",
        route=BackendRoute(method="GET", path="/tickets", fixed={"type": "getOpen"}),
    ),
    ToolDefinition(
        name="close_ticket",
        description="Close a support ticket, optionally with a resolution note.",
        parameters=(
            _id("ticket"),
            ToolParameter(
                name="resolution",
                type="string",
                description="How the ticket was resolved",
                required=False,
            ),
        ),
        side_effect=WRITE,
        route=BackendRoute(method="PUT", path="/tickets", fixed={"type": "close"}),
    ),
    ToolDefinition(
        name="update_ticket_priority",
        description="Change the priority of a support ticket.",
        parameters=(
            _id("ticket"),
            ToolParameter(
                name="priority",
                type="string",
                description="New priority",
                enum=("LOW", "MEDIUM", "HIGH"),
            ),
        ),
        side_effect=WRITE,
        route=BackendRoute(method="PUT", path="/tickets", fixed={"type": "updatePriority"}),
    ),
    ToolDefinition(
        name="assign_ticket",
        description="Assign a support ticket to a staff user.",
        parameters=(
            _id("ticket"),
            ToolParameter(name="assigneeId", type="integer", description="Staff user ID"),
        ),
        side_effect=WRITE,
        route=BackendRoute(method="PUT", path="/tickets", fixed={"type": "assign"}),
    ),
]

# =============================================================================
# Orders
# =============================================================================

ORDER_TOOLS = [
    ToolDefinition(
        name="get_order",
        description="Retrieve an order by its numeric ID.",
        parameters=(_id("order"),),
        route=BackendRoute(method="GET", path="/orders", fixed={"type": "get"}),
    ),
    ToolDefinition(
        name="get_pending_orders",
        description="List all orders with PENDING status. Takes no parameters.",
        route=BackendRoute(method="GET", path="/orders", fixed={"type": "getPending"}),
    ),
    ToolDefinition(
        name="update_order_status",
        description="Change the status of an order.",
        parameters=(
            _id("order"),
            ToolParameter(
                name="status",
                type="string",
                description="New order status",
                enum=("PENDING", "DELIVERED", "REFUNDED"),
            ),
        ),
        side_effect=WRITE,
        route=BackendRoute(method="PUT", path="/orders", fixed={"type": "updateStatus"}),
    ),
    ToolDefinition(
        name="process_refund",
        description="Refund an order. Requires approval from an admin.",
        parameters=(
            _id("order"),
            ToolParameter(name="reason", type="string", description="Reason for the refund"),
        ),
        side_effect=SENSITIVE,
        route=BackendRoute(method="POST", path="/orders", fixed={"type": "refund"}),
        approval_template="Refund order #{id}: {reason}",
    ),
    ToolDefinition(
        name="notify_customer",
        description="Email the customer of an order.",
        parameters=(
            _id("order"),
            ToolParameter(name="subject", type="string", description="Email subject"),
            ToolParameter(name="message", type="string", description="Email body"),
        ),
        side_effect=WRITE,
        route=BackendRoute(method="POST", path="/orders", fixed={"type": "notify"}),
    ),
]

# =============================================================================
# Products
# =============================================================================

PRODUCT_TOOLS = [
    ToolDefinition(
        name="list_products",
        description="List store products with name, price, stock and category.",
        parameters=(
            _limit("products", 50),
            _offset(),
            ToolParameter(
                name="category",
                type="string",
                description="Only this category, e.g. Electronics",
                required=False,
            ),
        ),
        route=BackendRoute(method="GET", path="/products"),
    ),
    ToolDefinition(
        name="search_products",
        description="Search products by name, description keywords or category.",
        parameters=(
            ToolParameter(name="search", type="string", description="Search text"),
            _limit("results", 20),
        ),
        route=BackendRoute(method="GET", path="/products"),
    ),
    ToolDefinition(
        name="get_product",
        description="Retrieve a product by ID.",
        parameters=(_ref("productId", "product"),),
        route=BackendRoute(method="GET", path="/products/{productId}"),
    ),
    ToolDefinition(
        name="get_low_stock_products",
        description="List products whose stock is at or below a threshold.",
        parameters=(
            ToolParameter(
                name="threshold",
                type="integer",
                description="Stock threshold",
                required=False,
                default=10,
            ),
        ),
        route=BackendRoute(method="GET", path="/products/low-stock"),
    ),
    ToolDefinition(
        name="create_product",
        description="Add a new, active product to the store.",
        parameters=(
            ToolParameter(name="name", type="string", description="Product name"),
            ToolParameter(name="slug", type="string", description="URL slug, e.g. wireless-mouse"),
            ToolParameter(name="description", type="string", description="Product description"),
            ToolParameter(name="price", type="number", description="Price in dollars"),
            ToolParameter(name="stock", type="integer", description="Initial stock quantity"),
            ToolParameter(
                name="category",
                type="string",
                description="Product category",
                required=False,
                default="General",
            ),
            ToolParameter(
                name="featured",
                type="boolean",
                description="Show as a featured product",
                required=False,
            ),
        ),
        side_effect=WRITE,
        route=BackendRoute(method="POST", path="/products", fixed={"active": True}),
    ),
    ToolDefinition(
        name="update_product_stock",
        description="Set a product's stock, or adjust it up or down.",
        parameters=(
            _ref("productId", "product"),
            ToolParameter(
                name="quantity",
                type="integer",
                description="New stock, or the change when adjusting (negative to decrease)",
            ),
            ToolParameter(
                name="mode",
                type="string",
                description="set replaces the stock, adjust adds to it",
                required=False,
                default="set",
                enum=("set", "adjust"),
            ),
        ),
        side_effect=WRITE,
        route=BackendRoute(method="PATCH", path="/products/{productId}/stock"),
    ),
    ToolDefinition(
        name="set_product_price",
        description="Change the price of a product. Requires approval from an admin.",
        parameters=(
            _ref("productId", "product"),
            ToolParameter(name="price", type="number", description="New price in dollars"),
        ),
        side_effect=SENSITIVE,
        route=BackendRoute(method="PATCH", path="/products/{productId}/price"),
        approval_template="Set price of product #{productId} to ${price}",
    ),
    ToolDefinition(
        name="toggle_product_availability",
        description="Show or hide a product in the store.",
        parameters=(
            _ref("productId", "product"),
            ToolParameter(name="active", type="boolean", description="True to show the product"),
        ),
        side_effect=WRITE,
        route=BackendRoute(method="PATCH", path="/products/{productId}/availability"),
    ),
    ToolDefinition(
        name="bulk_update_products",
        description="Apply one change to many products at once. Requires approval from an admin.",
        parameters=(
            ToolParameter(
                name="action",
                type="string",
                description="Change to apply",
                enum=(
                    "update_price",
                    "update_stock",
                    "toggle_availability",
                    "mark_featured",
                    "unmark_featured",
                ),
            ),
            ToolParameter(name="productIds", type="array", description="Product IDs to update"),
            ToolParameter(
                name="value",
                type="string",
                description="Price, stock quantity or true/false, depending on the action",
                required=False,
            ),
        ),
        side_effect=SENSITIVE,
        route=BackendRoute(method="POST", path="/products/bulk-update"),
        approval_template="Apply {action} to products {productIds}",
    ),
]

# =============================================================================
# Customers
# =============================================================================

CUSTOMER_TOOLS = [
    ToolDefinition(
        name="list_customers",
        description="List customers with id, name, email and role.",
        parameters=(_limit("customers", 50), _offset()),
        route=BackendRoute(method="GET", path="/customers"),
    ),
    ToolDefinition(
        name="get_customer_details",
        description="Get a customer's profile, contact details and account status.",
        parameters=(_ref("customerId", "customer"),),
        route=BackendRoute(method="GET", path="/customers/{customerId}"),
    ),
    ToolDefinition(
        name="get_customer_orders",
        description="List a customer's orders, newest first.",
        parameters=(_ref("customerId", "customer"), _limit("orders", 10)),
        route=BackendRoute(method="GET", path="/customers/{customerId}/orders"),
    ),
    ToolDefinition(
        name="get_customer_tickets",
        description="List the support tickets a customer opened.",
        parameters=(
            _ref("customerId", "customer"),
            ToolParameter(
                name="status",
                type="string",
                description="Ticket status filter",
                required=False,
                enum=("OPEN", "CLOSED", "ALL"),
            ),
        ),
        route=BackendRoute(method="GET", path="/customers/{customerId}/tickets"),
    ),
    ToolDefinition(
        name="get_customer_stats",
        description="Get a customer's order count, total spent, average order value and ticket count.",
        parameters=(_ref("customerId", "customer"),),
        route=BackendRoute(method="GET", path="/customers/{customerId}/stats"),
    ),
    ToolDefinition(
        name="update_customer_info",
        description="Update a customer's name, email or phone number.",
        parameters=(
            _ref("customerId", "customer"),
            ToolParameter(name="name", type="string", description="New name", required=False),
            ToolParameter(name="email", type="string", description="New email", required=False),
            ToolParameter(name="phone", type="string", description="New phone", required=False),
        ),
        side_effect=WRITE,
        route=BackendRoute(method="PUT", path="/customers/{customerId}"),
    ),
    ToolDefinition(
        name="flag_customer",
        description="Flag a customer account for review. Requires approval from an admin.",
        parameters=(
            _ref("customerId", "customer"),
            ToolParameter(name="reason", type="string", description="Why the account is flagged"),
            ToolParameter(
                name="severity",
                type="string",
                description="Flag severity",
                required=False,
                default="MEDIUM",
                enum=("LOW", "MEDIUM", "HIGH"),
            ),
        ),
        side_effect=SENSITIVE,
        route=BackendRoute(method="POST", path="/customers/{customerId}/flag"),
        approval_template="Flag customer #{customerId}: {reason}",
    ),
]

# =============================================================================
# Analytics
# =============================================================================

ANALYTICS_TOOLS = [
    ToolDefinition(
        name="get_revenue_report",
        description="Get total sales, order count and average order value for a date range.",
        parameters=(
            ToolParameter(name="startDate", type="string", description="Start date (YYYY-MM-DD)"),
            ToolParameter(name="endDate", type="string", description="End date (YYYY-MM-DD)"),
            ToolParameter(
                name="groupBy",
                type="string",
                description="Bucket size",
                required=False,
                enum=("day", "week", "month"),
            ),
        ),
        route=BackendRoute(method="GET", path="/analytics/revenue"),
    ),
    ToolDefinition(
        name="get_top_products",
        description="Rank best-selling products by units sold or revenue.",
        parameters=(
            _limit("products", 10),
            ToolParameter(
                name="sortBy",
                type="string",
                description="Ranking key",
                required=False,
                default="revenue",
                enum=("units", "revenue"),
            ),
            ToolParameter(
                name="period",
                type="string",
                description="Look-back window in days, e.g. 30",
                required=False,
            ),
        ),
        route=BackendRoute(method="GET", path="/analytics/top-products"),
    ),
    ToolDefinition(
        name="get_customer_satisfaction_score",
        description="Get satisfaction metrics from ticket ratings, resolution time and feedback.",
        parameters=(_period(),),
        route=BackendRoute(method="GET", path="/analytics/csat"),
    ),
    ToolDefinition(
        name="get_conversion_rate",
        description="Get visitor-to-customer conversion and cart abandonment rates.",
        parameters=(_period(),),
        route=BackendRoute(method="GET", path="/analytics/conversion-rate"),
    ),
    ToolDefinition(
        name="get_sales_forecast",
        description="Forecast sales for the coming days from historical data.",
        parameters=(
            ToolParameter(name="period", type="integer", description="Days to forecast"),
        ),
        route=BackendRoute(method="GET", path="/analytics/forecast"),
    ),
    ToolDefinition(
        name="export_report",
        description="Export a report as CSV or PDF.",
        parameters=(
            ToolParameter(
                name="reportType",
                type="string",
                description="What the report covers",
                enum=("revenue", "orders", "products", "customers", "tickets"),
            ),
            ToolParameter(
                name="format", type="string", description="File format", enum=("csv", "pdf")
            ),
            ToolParameter(
                name="startDate", type="string", description="Start date (YYYY-MM-DD)", required=False
            ),
            ToolParameter(
                name="endDate", type="string", description="End date (YYYY-MM-DD)", required=False
            ),
        ),
        route=BackendRoute(method="POST", path="/analytics/export"),
    ),
]

# =============================================================================
# Site control
# =============================================================================

SITE_TOOLS = [
    ToolDefinition(
        name="get_site_status",
        description="Get maintenance mode and cache status. Takes no parameters.",
        route=BackendRoute(method="GET", path="/site", fixed={"type": "status"}),
    ),
    ToolDefinition(
        name="get_site_analytics",
        description="Get counts of orders, posts, tickets, users and logs.",
        route=BackendRoute(method="GET", path="/site", fixed={"type": "analytics"}),
    ),
    ToolDefinition(
        name="toggle_maintenance_mode",
        description="Enable or disable site maintenance mode. Requires approval from an admin.",
        parameters=(
            ToolParameter(
                name="enabled", type="boolean", description="True to enable maintenance mode"
            ),
        ),
        side_effect=SENSITIVE,
        route=BackendRoute(method="PUT", path="/site", fixed={"type": "maintenance"}),
        approval_template="Set maintenance mode to {enabled}",
    ),
    ToolDefinition(
        name="clear_cache",
        description="Clear the site cache. Takes no parameters.",
        side_effect=WRITE,
        route=BackendRoute(method="POST", path="/site", fixed={"type": "clearCache"}),
    ),
]

# =============================================================================
# Agent logs
# =============================================================================

LOG_TOOLS = [
    ToolDefinition(
        name="get_agent_logs",
        description="Retrieve recent agent action logs.",
        parameters=(
            ToolParameter(
                name="limit",
                type="integer",
                description="Maximum number of logs",
                required=False,
                default=20,
            ),
        ),
        route=BackendRoute(method="GET", path="/logs"),
    ),
    ToolDefinition(
        name="get_log_by_id",
        description="Retrieve one agent log with its child steps.",
        parameters=(_id("log"),),
        route=BackendRoute(method="GET", path="/logs"),
    ),
]

DEFAULT_TOOLS: list[ToolDefinition] = [
    *BLOG_TOOLS,
    *CONTENT_TOOLS,
    *TICKET_TOOLS,
    *ORDER_TOOLS,
    *PRODUCT_TOOLS,
    *CUSTOMER_TOOLS,
    *ANALYTICS_TOOLS,
    *SITE_TOOLS,
    *LOG_TOOLS,
]


def build_default_registry() -> ToolRegistry:
    """Create a frozen registry holding the default catalog."""
    return ToolRegistry(DEFAULT_TOOLS)
