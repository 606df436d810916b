DEFAULT_LANGUAGE = "en"

STRINGS = {
    "en": {
        "new_booking": "New Booking Received!",
        "new_booking_short": "New Booking!",
        "booking_confirmed": "Booking Confirmed",
        "details": "Details",
        "customer": "Customer",
        "customer_details": "Customer Details",
        "dates": "Dates",
        "booking_dates": "Booking Dates",
        "message": "Message",
        "name": "Name",
        "phone": "Phone",
        "email": "Email",
        "check_in": "Check-in",
        "check_out": "Check-out",
        "guests": "Guests",
        "room": "Room",
        "no_message": "No message",
        "coming_soon": "Coming soon",
        "soon": "Soon",
        "booking_id": "Booking ID",
        "powered_by": "Powered by {property}",
        "dear": "Dear",
        "thanks": "Thank you! We have received your booking.",
        "contact_soon": "We'll contact you shortly!",
        "owner_email_subject": "🎉 New Booking - {name}",
        "guest_email_subject": "✅ Booking Confirmation - {property}",
        "owner_sms": "New booking: {name}, {phone}. {date}. ID: {booking_id}",
        "guest_sms": "{property}: Booking confirmed! ID: {booking_id}. We'll contact you soon.",
    },
    "hi": {
        "new_booking": "नई बुकिंग मिली!",
        "new_booking_short": "नई बुकिंग!",
        "booking_confirmed": "बुकिंग की पुष्टि",
        "details": "विवरण",
        "customer": "ग्राहक",
        "customer_details": "ग्राहक विवरण",
        "dates": "तारीख",
        "booking_dates": "बुकिंग तारीख",
        "message": "संदेश",
        "name": "नाम",
        "phone": "फोन",
        "email": "ईमेल",
        "check_in": "चेक-इन",
        "check_out": "चेक-आउट",
        "guests": "मेहमान",
        "room": "कमरा",
        "no_message": "कोई संदेश नहीं",
        "coming_soon": "जल्द ही",
        "soon": "जल्द ही",
        "booking_id": "बुकिंग ID",
        "powered_by": "{property} द्वारा संचालित",
        "dear": "प्रिय",
        "thanks": "धन्यवाद! हमने आपकी बुकिंग प्राप्त कर ली है।",
        "contact_soon": "हम जल्द ही आपसे संपर्क करेंगे!",
        "owner_email_subject": "🎉 नई बुकिंग - {name}",
        "guest_email_subject": "✅ बुकिंग की पुष्टि - {property}",
        "owner_sms": "नई बुकिंग: {name}, {phone}. {date}. ID: {booking_id}",
        "guest_sms": "{property}: बुकिंग पुष्टि! ID: {booking_id}. हम जल्द संपर्क करेंगे।",
    },
}


def strings_for(language: str) -> dict[str, str]:
    return STRINGS.get((language or "").lower(), STRINGS[DEFAULT_LANGUAGE])
