from django.urls import path
from . import views

urlpatterns = [
    # Health check
    path("health", views.health, name="health"),

    # Bikes
    path("bikes", views.bikes, name="bikes"),
    path("bikes/types", views.bike_types, name="bike_types"),
    path("bikes/<str:bike_id>", views.bike_detail, name="bike_detail"),
    path("bikes/<str:bike_id>/location", views.bike_location, name="bike_location"),
    path("bikes/<str:bike_id>/availability", views.bike_availability, name="bike_availability"),

    # Rides (fixed paths before rides/<id>)
    path("rides/start", views.ride_start, name="ride_start"),
    path("rides/active", views.ride_active, name="ride_active"),
    path("rides/history", views.ride_history, name="ride_history"),
    path("rides/stats", views.ride_stats, name="ride_stats"),
    path("rides/route", views.ride_route, name="ride_route"),
    path("rides/<str:ride_id>", views.ride_detail, name="ride_detail"),
    path("rides/<str:ride_id>/location", views.ride_location, name="ride_location"),
    path("rides/<str:ride_id>/end", views.ride_end, name="ride_end"),
    path("rides/<str:ride_id>/cancel", views.ride_cancel, name="ride_cancel"),

    # Users
    path("users", views.users, name="users"),
    path("users/me", views.user_me, name="user_me"),
    path("users/me/profile-picture", views.user_profile_picture, name="user_profile_picture"),
    path("users/<str:user_id>/role", views.user_role, name="user_role"),
    path("users/<str:user_id>/verification", views.user_verification, name="user_verification"),

    # Notifications
    path("notifications", views.notifications, name="notifications"),
    path("notifications/unread-count", views.unread_count, name="notifications_unread_count"),
    path("notifications/read-all", views.mark_all_read, name="notifications_read_all"),
    path("notifications/clear", views.clear_notifications, name="notifications_clear"),
    path("notifications/<str:notification_id>", views.notification_detail, name="notification_detail"),
    path("notifications/<str:notification_id>/read", views.mark_read, name="notification_read"),

    # Support and FAQs
    path("support/messages", views.support_messages, name="support_messages"),
    path("support/messages/<str:message_id>", views.support_message_detail, name="support_message_detail"),
    path("support/messages/<str:message_id>/status", views.support_message_status, name="support_message_status"),
    path("support/messages/<str:message_id>/respond", views.support_message_respond, name="support_message_respond"),
    path("support/messages/<str:message_id>/replies", views.support_message_replies, name="support_message_replies"),
    path("faqs", views.faqs, name="faqs"),
    path("faqs/<str:faq_id>", views.faq_detail, name="faq_detail"),

    # Payments
    path("settings/payment", views.payment_settings, name="payment_settings"),
    path("payments", views.payments, name="payments"),
    path("payments/<str:payment_id>/status", views.payment_status, name="payment_status"),

    # Bookings
    path("bookings", views.bookings, name="bookings"),
    path("bookings/availability", views.booking_availability, name="booking_availability"),
    path("bookings/<str:booking_id>", views.booking_detail, name="booking_detail"),

    # Admin
    path("admin/deleteUser", views.delete_user, name="admin_delete_user"),
    path("admin/updateUserBlockStatus", views.update_user_block_status, name="admin_update_user_block_status"),
    path("admin/rides", views.admin_rides, name="admin_rides"),
    path("admin/support/messages", views.admin_support_messages, name="admin_support_messages"),
    path("admin/bookings/revenue", views.booking_revenue, name="admin_booking_revenue"),
    path("admin/analytics", views.analytics, name="admin_analytics"),
]
